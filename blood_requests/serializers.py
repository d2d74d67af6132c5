# blood_requests/serializers.py
from django.conf import settings
from rest_framework import serializers

from accounts.serializers import UserSummarySerializer
from blood_requests.models import BloodRequest, DonorResponse
from blood_requests.lifecycle import OUTCOMES
from blood_requests.storage import validate_proof_file


class HospitalSerializer(serializers.Serializer):
    """The hospital_* columns of a request, as one nested object"""
    name = serializers.CharField(source='hospital_name', max_length=200, required=False, allow_blank=True)
    address = serializers.CharField(source='hospital_address', max_length=255, required=False, allow_blank=True)
    city = serializers.CharField(source='hospital_city', max_length=100, required=False, allow_blank=True)
    state = serializers.CharField(source='hospital_state', max_length=100, required=False, allow_blank=True)
    zip_code = serializers.CharField(source='hospital_zip_code', max_length=20, required=False, allow_blank=True)
    phone = serializers.CharField(source='hospital_phone', max_length=20, required=False, allow_blank=True)


class ContactInfoSerializer(serializers.Serializer):
    name = serializers.CharField(source='contact_name', max_length=200, required=False, allow_blank=True)
    phone = serializers.CharField(source='contact_phone', max_length=20, required=False, allow_blank=True)
    email = serializers.EmailField(source='contact_email', required=False, allow_blank=True)
    relationship = serializers.CharField(
        source='contact_relationship', max_length=100, required=False, allow_blank=True
    )


class LocationField(serializers.Field):
    """``[longitude, latitude]`` in and out, stored as two float columns"""

    default_error_messages = {
        'invalid': 'Location must be a [longitude, latitude] pair.',
        'out_of_range': 'Longitude must be within ±180 and latitude within ±90.',
    }

    def __init__(self, **kwargs):
        kwargs['source'] = '*'
        kwargs.setdefault('required', False)
        kwargs.setdefault('allow_null', True)
        super().__init__(**kwargs)

    def to_representation(self, instance):
        return instance.location

    def to_internal_value(self, data):
        if data is None:
            return {'longitude': None, 'latitude': None}
        if not isinstance(data, (list, tuple)) or len(data) != 2:
            self.fail('invalid')
        try:
            longitude, latitude = float(data[0]), float(data[1])
        except (TypeError, ValueError):
            self.fail('invalid')
        if not (-180 <= longitude <= 180 and -90 <= latitude <= 90):
            self.fail('out_of_range')
        return {'longitude': longitude, 'latitude': latitude}

    def validate_empty_values(self, data):
        # null clears the location instead of being skipped
        if data is None:
            return (False, None)
        return super().validate_empty_values(data)


class DonorResponseSerializer(serializers.ModelSerializer):
    donor_name = serializers.CharField(source='donor.user.display_name', read_only=True)
    donor_blood_type = serializers.CharField(source='donor.blood_type', read_only=True)
    donor_phone = serializers.CharField(source='donor.contact_phone', read_only=True)

    class Meta:
        model = DonorResponse
        fields = [
            'id',
            'donor',
            'donor_name',
            'donor_blood_type',
            'donor_phone',
            'status',
            'response_date',
            'accepted_date',
            'donation_date',
            'donation_proof_photo',
            'notes',
            'requester_feedback',
            'needs_reupload',
        ]
        read_only_fields = fields


class BloodRequestSerializer(serializers.ModelSerializer):
    """
    Serializer for BloodRequest with hospital and contact details nested
    """
    requested_by = UserSummarySerializer(read_only=True)
    hospital = HospitalSerializer(source='*', required=False)
    contact_info = ContactInfoSerializer(source='*', required=False)
    location = LocationField()

    accepted_donors_count = serializers.SerializerMethodField()
    max_donors_reached = serializers.SerializerMethodField()
    donors = DonorResponseSerializer(source='responses', many=True, read_only=True)

    class Meta:
        model = BloodRequest
        fields = [
            'id',
            'requested_by',
            'patient_name',
            'blood_type',
            'units_needed',
            'hospital',
            'location',
            'urgency',
            'reason',
            'required_by',
            'contact_info',
            'status',
            'accepted_donors_count',
            'max_donors_reached',
            'donors',
            'created_at',
            'updated_at',
        ]
        read_only_fields = ['status', 'created_at', 'updated_at']

    def get_accepted_donors_count(self, obj):
        count = getattr(obj, 'accepted_donors_count', None)
        if count is None:
            count = obj.active_donor_count()
        return count

    def get_max_donors_reached(self, obj):
        return self.get_accepted_donors_count(obj) >= settings.MAX_ACTIVE_DONORS


class NearbyRequestSerializer(BloodRequestSerializer):
    distance = serializers.SerializerMethodField()

    class Meta(BloodRequestSerializer.Meta):
        fields = BloodRequestSerializer.Meta.fields + ['distance']

    def get_distance(self, obj):
        return getattr(obj, 'distance', None)


# ---------------------------
# Action payloads
# ---------------------------
class AcceptSerializer(serializers.Serializer):
    accepted_at = serializers.DateTimeField(required=False)


class DonationProofSerializer(serializers.Serializer):
    """Either an uploaded image (``donation_proof``) or an existing ``photo_url``"""
    donation_proof = serializers.FileField(required=False)
    photo_url = serializers.URLField(required=False, max_length=500)
    notes = serializers.CharField(required=False, allow_blank=True, default='')

    def validate(self, attrs):
        upload = attrs.get('donation_proof')
        if upload is None and not attrs.get('photo_url'):
            raise serializers.ValidationError({'donation_proof': ['Please upload a photo of your donation.']})
        if upload is not None:
            validate_proof_file(upload)
        return attrs


class DonationStatusSerializer(serializers.Serializer):
    donor_id = serializers.IntegerField()
    status = serializers.ChoiceField(choices=OUTCOMES)
    feedback = serializers.CharField(required=False, allow_blank=True, default='')


class NearbyQuerySerializer(serializers.Serializer):
    lat = serializers.FloatField(required=False, min_value=-90, max_value=90)
    lng = serializers.FloatField(required=False, min_value=-180, max_value=180)
    blood_type = serializers.ChoiceField(choices=BloodRequest.BLOOD_TYPE_CHOICES, required=False)
    urgency = serializers.ChoiceField(choices=BloodRequest.URGENCY_CHOICES, required=False)
    date = serializers.DateField(required=False)

    def validate(self, attrs):
        if ('lat' in attrs) != ('lng' in attrs):
            raise serializers.ValidationError('lat and lng must be given together.')
        return attrs

# donors/serializers.py
from rest_framework import serializers
from .models import DonorProfile


class DonorSerializer(serializers.ModelSerializer):
    name = serializers.CharField(source='user.display_name', read_only=True)
    email = serializers.EmailField(source='user.email', read_only=True)

    class Meta:
        model = DonorProfile
        fields = [
            'id', 'name', 'email', 'blood_type', 'age', 'weight', 'gender', 'phone',
            'street', 'city', 'state', 'zip_code', 'country',
            'latitude', 'longitude', 'donation_count', 'last_donation_date',
            'is_available', 'can_donate', 'created_at', 'updated_at',
        ]
        read_only_fields = ['donation_count', 'last_donation_date', 'created_at', 'updated_at']


class AcceptedRequestSerializer(serializers.Serializer):
    """One entry of a donor's accepted requests (built by the lifecycle read model)"""
    request_id = serializers.IntegerField()
    blood_type = serializers.CharField()
    patient_name = serializers.CharField()
    requester = serializers.DictField()
    contact_phone = serializers.CharField()
    location = serializers.CharField()
    address = serializers.CharField()
    status = serializers.CharField()
    request_status = serializers.CharField()
    hospital_name = serializers.CharField()
    urgency_level = serializers.CharField()
    units_needed = serializers.IntegerField()
    created_at = serializers.DateTimeField()
    accepted_date = serializers.DateTimeField(allow_null=True)
    donation_date = serializers.DateTimeField(allow_null=True)
    notes = serializers.CharField()
    requester_feedback = serializers.CharField()
    needs_reupload = serializers.BooleanField()
    donation_proof_photo = serializers.CharField(allow_null=True)

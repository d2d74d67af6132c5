# blood_requests/views.py
import logging

from django.core.exceptions import ObjectDoesNotExist
from django.core.files.storage import default_storage
from django.db.models import Prefetch
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.parsers import FormParser, JSONParser, MultiPartParser
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from accounts.permissions import IsOwnerOrAdminForWrites
from blood_requests import lifecycle
from blood_requests.exceptions import NotFound
from blood_requests.models import BloodRequest, DonorResponse
from blood_requests.serializers import (
    AcceptSerializer,
    BloodRequestSerializer,
    DonationProofSerializer,
    DonationStatusSerializer,
    NearbyQuerySerializer,
    NearbyRequestSerializer,
)
from blood_requests.storage import save_proof
from blood_requests.tasks import delete_donation_proof

logger = logging.getLogger(__name__)


def get_donor_profile(user):
    try:
        return user.donor_profile
    except ObjectDoesNotExist:
        raise NotFound('Donor profile not found')


class BloodRequestViewSet(viewsets.ModelViewSet):
    """
    Blood requests: CRUD for requesters plus the donor lifecycle actions
    (accept, decline, donation proof) and the requester's verification.
    """
    serializer_class = BloodRequestSerializer
    permission_classes = [IsAuthenticated]
    lookup_value_regex = r'\d+'

    def get_queryset(self):
        queryset = (
            BloodRequest.objects
            .select_related('requested_by')
            .with_active_donor_count()
            .prefetch_related(
                Prefetch('responses', queryset=DonorResponse.objects.select_related('donor__user'))
            )
            .order_by('-created_at')
        )
        if self.action == 'list':
            # The browse list shows other people's requests
            queryset = queryset.exclude(requested_by=self.request.user)
            status_filter = self.request.query_params.get('status')
            if status_filter and status_filter != 'all':
                queryset = queryset.filter(status=status_filter)
        return queryset

    def get_permissions(self):
        if self.action in ('update', 'partial_update', 'destroy', 'cancel'):
            return [IsAuthenticated(), IsOwnerOrAdminForWrites()]
        return super().get_permissions()

    def _request_data(self, pk):
        return self.get_serializer(self.get_queryset().get(pk=pk)).data

    # ---------------------------
    # CRUD
    # ---------------------------
    def perform_create(self, serializer):
        blood_request = lifecycle.create_request(self.request.user.id, serializer.validated_data)
        serializer.instance = self.get_queryset().get(pk=blood_request.pk)

    def perform_update(self, serializer):
        blood_request = lifecycle.update_request(
            serializer.instance.pk, self.request.user, serializer.validated_data
        )
        serializer.instance = self.get_queryset().get(pk=blood_request.pk)

    def perform_destroy(self, instance):
        lifecycle.delete_request(instance.pk, self.request.user)

    @action(detail=True, methods=['post'])
    def cancel(self, request, pk=None):
        blood_request = self.get_object()
        lifecycle.cancel_request(blood_request.pk, request.user)
        return Response(self._request_data(blood_request.pk))

    # ---------------------------
    # Donor actions
    # ---------------------------
    @action(detail=True, methods=['post'])
    def accept(self, request, pk=None):
        """Donor accepts the request"""
        donor = get_donor_profile(request.user)
        serializer = AcceptSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        blood_request = lifecycle.accept_request(
            pk, donor.id, accepted_at=serializer.validated_data.get('accepted_at')
        )
        return Response({
            'message': 'Blood request accepted successfully',
            'request': self._request_data(blood_request.pk),
        }, status=status.HTTP_200_OK)

    @action(detail=True, methods=['post'])
    def decline(self, request, pk=None):
        """Donor declines, or withdraws an earlier acceptance"""
        donor = get_donor_profile(request.user)
        blood_request = lifecycle.decline_request(pk, donor.id)
        return Response({
            'message': 'Blood request declined',
            'request': self._request_data(blood_request.pk),
        }, status=status.HTTP_200_OK)

    @action(
        detail=True,
        methods=['post'],
        url_path='donation-proof',
        parser_classes=[MultiPartParser, FormParser, JSONParser],
    )
    def donation_proof(self, request, pk=None):
        """Donor submits a photo proving the donation"""
        donor = get_donor_profile(request.user)
        serializer = DonationProofSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        upload = serializer.validated_data.get('donation_proof')
        if upload is not None:
            path = save_proof(upload, request.user.id)
            photo_url = request.build_absolute_uri(default_storage.url(path))
        else:
            photo_url = serializer.validated_data['photo_url']

        try:
            result = lifecycle.submit_donation_proof(
                pk, donor.id, photo_url, serializer.validated_data.get('notes', '')
            )
        except Exception:
            if upload is not None:
                # The transition was refused; drop the file we just stored
                logger.info(f"Discarding uploaded donation proof {photo_url}")
                delete_donation_proof.delay(photo_url)
            raise

        return Response({
            'message': 'Donation confirmation submitted successfully. Waiting for requester verification.',
            'donation_date': result['donation_date'],
            'status': result['status'],
            'photo_url': result['photo_url'],
        }, status=status.HTTP_200_OK)

    # ---------------------------
    # Requester verification
    # ---------------------------
    @action(detail=True, methods=['post'], url_path='donation-status')
    def donation_status(self, request, pk=None):
        """Requester confirms, rejects or asks for a new proof"""
        serializer = DonationStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        result = lifecycle.update_donation_status(
            pk, request.user.id, data['donor_id'], data['status'], data.get('feedback')
        )
        return Response({
            'message': f"Donation status updated to {data['status']}",
            'status': result['status'],
        }, status=status.HTTP_200_OK)

    # ---------------------------
    # Requester read models
    # ---------------------------
    @action(detail=False, methods=['get'])
    def mine(self, request):
        requests = lifecycle.get_my_requests(request.user.id).prefetch_related(
            Prefetch('responses', queryset=DonorResponse.objects.select_related('donor__user'))
        )
        return Response(self.get_serializer(requests, many=True).data)

    @action(detail=False, methods=['get'])
    def history(self, request):
        history = lifecycle.get_my_request_history(request.user.id)
        items = []
        for item in history['requests']:
            data = self.get_serializer(item['request']).data
            data['donor_stats'] = item['donor_stats']
            data['completion_date'] = item['completion_date']
            items.append(data)
        return Response({'requests': items, 'stats': history['stats']})

    @action(detail=False, methods=['get'])
    def dashboard(self, request):
        return Response(lifecycle.get_requester_dashboard(request.user.id))

    @action(detail=False, methods=['get'])
    def nearby(self, request):
        query = NearbyQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)
        params = query.validated_data

        requests = lifecycle.find_nearby_requests(
            request.user,
            lat=params.get('lat'),
            lng=params.get('lng'),
            blood_type=params.get('blood_type'),
            urgency=params.get('urgency'),
            on_date=params.get('date'),
        )
        serializer = NearbyRequestSerializer(requests, many=True, context=self.get_serializer_context())
        return Response(serializer.data)

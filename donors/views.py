# donors/views.py
import logging

from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from blood_requests import lifecycle
from blood_requests.views import get_donor_profile
from donors.serializers import AcceptedRequestSerializer, DonorSerializer

logger = logging.getLogger(__name__)


@api_view(['GET', 'PATCH'])
@permission_classes([IsAuthenticated])
def my_profile(request):
    """Get or update the current user's donor profile (e.g. availability)"""
    donor = get_donor_profile(request.user)

    if request.method == 'PATCH':
        serializer = DonorSerializer(donor, data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        serializer.save()
        logger.info(f"Donor {donor.id} updated their profile")
        return Response(serializer.data)

    return Response(DonorSerializer(donor).data)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def my_accepted_requests(request):
    """Blood requests the current donor has accepted, with their donation state"""
    donor = get_donor_profile(request.user)
    accepted = lifecycle.get_accepted_requests(donor.id)
    return Response(AcceptedRequestSerializer(accepted, many=True).data)

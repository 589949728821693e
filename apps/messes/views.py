from django.conf import settings
from rest_framework import status, serializers
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from drf_spectacular.utils import extend_schema

from apps.realtime.broadcasters import get_broadcaster
from .permissions import IsMessAdmin, IsMessMember
from .serializers import (
    MessSerializer,
    MessDetailSerializer,
    MessCreateSerializer,
    JoinMessSerializer,
    JoinRequestSerializer,
    RequestActionSerializer,
    RequestStatusSerializer,
)
from .services import (
    MembershipService,
    # Exceptions
    MessServiceError,
    MessLookupError,
    MessPermissionError,
)


# Response serializers for API documentation
class MessageResponseSerializer(serializers.Serializer):
    message = serializers.CharField()


class ErrorResponseSerializer(serializers.Serializer):
    error = serializers.CharField()


class JoinResponseSerializer(serializers.Serializer):
    message = serializers.CharField()
    request = JoinRequestSerializer(required=False)
    mess = MessSerializer(required=False)


def _service():
    return MembershipService(broadcaster=get_broadcaster())


def _error_response(exc):
    """Map a membership service error to its HTTP response."""
    if isinstance(exc, MessLookupError):
        code = status.HTTP_404_NOT_FOUND
    elif isinstance(exc, MessPermissionError):
        code = status.HTTP_403_FORBIDDEN
    else:
        code = status.HTTP_400_BAD_REQUEST
    return Response({'error': str(exc)}, status=code)


@extend_schema(
    methods=['GET'],
    responses={200: MessDetailSerializer, 403: ErrorResponseSerializer},
    description="Get the current user's mess with its active members.",
    tags=['mess'],
)
@extend_schema(
    methods=['POST'],
    request=MessCreateSerializer,
    responses={201: MessSerializer, 400: ErrorResponseSerializer},
    description="Create a mess. The creator becomes its admin and first member.",
    tags=['mess'],
)
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def mess_root(request):
    """Create a mess (POST) or get the current mess (GET)."""
    service = _service()

    if request.method == 'GET':
        try:
            mess = service.get_mess_details(user=request.user)
        except MessServiceError as e:
            return _error_response(e)
        return Response(MessDetailSerializer(mess).data)

    serializer = MessCreateSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)

    try:
        mess = service.create_mess(
            name=serializer.validated_data['name'],
            address=serializer.validated_data['address'],
            user=request.user,
        )
    except MessServiceError as e:
        return _error_response(e)

    return Response(MessSerializer(mess).data, status=status.HTTP_201_CREATED)


@extend_schema(
    responses={200: MessSerializer, 404: ErrorResponseSerializer},
    description="Find an active mess by its 6-digit identifier code.",
    tags=['mess'],
)
@api_view(['GET'])
@permission_classes([IsAuthenticated])
def search_mess(request, code):
    """Search mess by identifier code."""
    try:
        mess = _service().search_mess(code=code)
    except MessServiceError as e:
        return _error_response(e)

    return Response(MessSerializer(mess).data)


@extend_schema(
    request=JoinMessSerializer,
    responses={
        201: JoinResponseSerializer,
        400: ErrorResponseSerializer,
        404: ErrorResponseSerializer,
    },
    description=(
        "Ask to join a mess. Creates a pending request for the admin, or joins "
        "directly when MESS_JOIN_REQUIRES_APPROVAL is disabled."
    ),
    tags=['mess'],
)
@api_view(['POST'])
@permission_classes([IsAuthenticated])
def join_mess(request):
    """Request to join a mess."""
    serializer = JoinMessSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    mess_id = serializer.validated_data['mess_id']
    service = _service()

    try:
        if getattr(settings, 'MESS_JOIN_REQUIRES_APPROVAL', True):
            join_request = service.request_to_join(mess_id=mess_id, user=request.user)
            return Response({
                'message': 'Join request sent successfully',
                'request': JoinRequestSerializer(join_request).data,
            }, status=status.HTTP_201_CREATED)

        membership = service.join_mess(mess_id=mess_id, user=request.user)
    except MessServiceError as e:
        return _error_response(e)

    return Response({
        'message': 'Joined mess successfully',
        'mess': MessSerializer(membership.mess).data,
    }, status=status.HTTP_201_CREATED)


@extend_schema(
    responses={200: JoinRequestSerializer(many=True), 403: ErrorResponseSerializer},
    description="List pending join requests of the admin's mess, oldest first.",
    tags=['mess'],
)
@api_view(['GET'])
@permission_classes([IsAuthenticated, IsMessAdmin])
def pending_requests(request):
    """Get pending join requests (admin only)."""
    try:
        join_requests = _service().get_pending_requests(admin=request.user)
    except MessServiceError as e:
        return _error_response(e)

    return Response(JoinRequestSerializer(join_requests, many=True).data)


@extend_schema(
    request=RequestActionSerializer,
    responses={
        200: MessageResponseSerializer,
        400: ErrorResponseSerializer,
        403: ErrorResponseSerializer,
        404: ErrorResponseSerializer,
    },
    description="Accept a pending join request (admin only).",
    tags=['mess'],
)
@api_view(['POST'])
@permission_classes([IsAuthenticated, IsMessAdmin])
def accept_request(request):
    """Accept a join request."""
    serializer = RequestActionSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)

    try:
        _service().accept_request(
            request_id=serializer.validated_data['request_id'],
            admin=request.user,
        )
    except MessServiceError as e:
        return _error_response(e)

    return Response({'message': 'Request accepted successfully'})


@extend_schema(
    request=RequestActionSerializer,
    responses={
        200: MessageResponseSerializer,
        403: ErrorResponseSerializer,
        404: ErrorResponseSerializer,
    },
    description="Reject a pending join request (admin only).",
    tags=['mess'],
)
@api_view(['POST'])
@permission_classes([IsAuthenticated, IsMessAdmin])
def reject_request(request):
    """Reject a join request."""
    serializer = RequestActionSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)

    try:
        _service().reject_request(
            request_id=serializer.validated_data['request_id'],
            admin=request.user,
        )
    except MessServiceError as e:
        return _error_response(e)

    return Response({'message': 'Request rejected'})


@extend_schema(
    request=None,
    responses={
        200: MessageResponseSerializer,
        400: ErrorResponseSerializer,
        404: ErrorResponseSerializer,
    },
    description="Cancel the current user's pending join request.",
    tags=['mess'],
)
@api_view(['POST'])
@permission_classes([IsAuthenticated])
def cancel_request(request):
    """Cancel own pending join request."""
    try:
        _service().cancel_request(user=request.user)
    except MessServiceError as e:
        return _error_response(e)

    return Response({'message': 'Join request cancelled successfully'})


@extend_schema(
    responses={200: RequestStatusSerializer},
    description=(
        "Current join status of the user: accepted, pending, rejected or none. "
        "For clients without a live socket connection."
    ),
    tags=['mess'],
)
@api_view(['GET'])
@permission_classes([IsAuthenticated])
def check_request_status(request):
    """Poll join request status."""
    result = _service().check_request_status(user=request.user)
    return Response(RequestStatusSerializer(result).data)


@extend_schema(
    request=None,
    responses={
        200: MessageResponseSerializer,
        400: ErrorResponseSerializer,
        403: ErrorResponseSerializer,
    },
    description="Leave the current mess. The mess admin cannot leave.",
    tags=['mess'],
)
@api_view(['POST'])
@permission_classes([IsAuthenticated, IsMessMember])
def leave_mess(request):
    """Leave current mess."""
    try:
        _service().leave_mess(user=request.user)
    except MessServiceError as e:
        return _error_response(e)

    return Response({'message': 'Left mess successfully'})


@extend_schema(
    request=None,
    responses={
        200: MessageResponseSerializer,
        400: ErrorResponseSerializer,
        403: ErrorResponseSerializer,
        404: ErrorResponseSerializer,
    },
    description="Remove a member from the admin's mess (admin only).",
    tags=['mess'],
)
@api_view(['DELETE'])
@permission_classes([IsAuthenticated, IsMessAdmin])
def remove_member(request, member_id):
    """Remove a member from the mess."""
    try:
        _service().remove_member(member_id=member_id, admin=request.user)
    except MessServiceError as e:
        return _error_response(e)

    return Response({'message': 'Member removed successfully'})

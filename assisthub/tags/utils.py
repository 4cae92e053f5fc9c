"""HTTP mapping for tag errors, shared by every view that edits tags"""
from rest_framework import status
from rest_framework.response import Response

from .exceptions import (
    DuplicateTag, EntityNotFound, InvalidTagAssociation, TagInUse,
    TagInUseCategoryLocked, TransactionFailed, UnknownTag,
)

ERROR_STATUS = {
    DuplicateTag: status.HTTP_409_CONFLICT,
    TagInUse: status.HTTP_409_CONFLICT,
    TagInUseCategoryLocked: status.HTTP_409_CONFLICT,
    TransactionFailed: status.HTTP_409_CONFLICT,
    EntityNotFound: status.HTTP_404_NOT_FOUND,
    InvalidTagAssociation: status.HTTP_400_BAD_REQUEST,
    UnknownTag: status.HTTP_400_BAD_REQUEST,
}


def tag_error_response(exc):
    """Response for a TagError: ``{'error': <type>, 'message': <text>}``"""
    status_code = ERROR_STATUS.get(type(exc), status.HTTP_400_BAD_REQUEST)
    return Response({
        'error': type(exc).__name__,
        'message': str(exc),
    }, status=status_code)

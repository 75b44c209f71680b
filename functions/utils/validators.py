# functions/utils/validators.py
"""
Input validation using Pydantic models.
Callable payloads are validated before any Firestore work happens.
"""
from typing import Any, Dict, Optional
from pydantic import BaseModel, Field, StrictInt, StrictStr, ValidationError, field_validator
from firebase_functions import https_fn
import logging

logger = logging.getLogger(__name__)


class VerifyPurchaseRequest(BaseModel):
    """Validation model for verify_purchase payloads"""

    receipt: StrictStr = Field(..., min_length=1)
    product_id: StrictStr = Field(..., alias='productId', min_length=1, max_length=200)
    platform: StrictStr = Field(..., min_length=1, max_length=20)

    class Config:
        extra = 'ignore'


class AddCreditsRequest(BaseModel):
    """Validation model for add_credits_to_user payloads"""

    user_id: StrictStr = Field(..., alias='userId', min_length=1, max_length=128)
    credits: StrictInt = Field(..., gt=0, le=100000)

    class Config:
        extra = 'ignore'


class UserRequest(BaseModel):
    """Validation model for payloads that target a single user"""

    user_id: StrictStr = Field(..., alias='userId', min_length=1, max_length=128)

    class Config:
        extra = 'ignore'


class DeletePhotoRequest(BaseModel):
    """Validation model for delete_user_photo payloads"""

    photo_id: StrictStr = Field(..., alias='photoId', min_length=1, max_length=128)

    @field_validator('photo_id')
    @classmethod
    def validate_photo_id(cls, v):
        if '/' in v:
            raise ValueError('Photo id cannot contain "/"')
        return v

    class Config:
        extra = 'ignore'


class FcmTokenRequest(BaseModel):
    """Validation model for update_fcm_token payloads"""

    token: StrictStr = Field(..., min_length=1, max_length=4096)

    class Config:
        extra = 'ignore'


class SubscriptionUpdateRequest(BaseModel):
    """Validation model for store server notifications"""

    platform: Optional[str] = None
    data: Dict[str, Any] = Field(default_factory=dict)

    class Config:
        extra = 'ignore'


def validate_request(model_class: type[BaseModel], data: Any) -> BaseModel:
    """
    Validate request data against a Pydantic model.

    Args:
        model_class: Pydantic model class
        data: Request data to validate

    Returns:
        Validated model instance

    Raises:
        ValidationError: If validation fails
    """
    if not isinstance(data, dict):
        data = {}
    try:
        return model_class(**data)
    except ValidationError as e:
        logger.warning(f"Validation failed for {model_class.__name__}: {e.errors()}")
        raise


def describe_validation_error(error: ValidationError) -> str:
    """Short human readable summary of the first validation problem."""
    errors = error.errors()
    if not errors:
        return 'Invalid request'
    first = errors[0]
    field = '.'.join(str(part) for part in first.get('loc', ())) or 'request'
    return f"{field}: {first.get('msg', 'invalid value')}"


def validate_callable(model_class: type[BaseModel], data: Any) -> BaseModel:
    """
    Validate a callable payload, raising INVALID_ARGUMENT on failure.

    Usage:
        req = validate_callable(UserRequest, request.data)
    """
    try:
        return validate_request(model_class, data)
    except ValidationError as e:
        raise https_fn.HttpsError(
            code=https_fn.FunctionsErrorCode.INVALID_ARGUMENT,
            message=describe_validation_error(e),
        ) from e

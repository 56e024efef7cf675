"""
Delivery form validation. Client-local: never reaches a backend.
"""

from __future__ import annotations

import re

from kungfu import Result, Ok, Error

from cartflow._types import CartError, CartErrors, DeliveryInfo

PHONE_PATTERN = re.compile(r"^\d{10,11}$")
EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


def delivery_field_errors(info: DeliveryInfo) -> dict[str, str]:
    errors: dict[str, str] = {}

    if not info.recipient_name.strip():
        errors["recipientName"] = "Recipient name is required"

    if not info.phone.strip():
        errors["phone"] = "Phone number is required"
    elif not PHONE_PATTERN.fullmatch(re.sub(r"\s", "", info.phone)):
        errors["phone"] = "Please enter a valid phone number"

    if info.email and not EMAIL_PATTERN.fullmatch(info.email):
        errors["email"] = "Please enter a valid email address"

    if not info.city.strip():
        errors["city"] = "City/Province is required"
    if not info.district.strip():
        errors["district"] = "District is required"
    if not info.address_detail.strip():
        errors["addressDetail"] = "Detailed address is required"

    return errors


def validate_delivery(info: DeliveryInfo) -> Result[DeliveryInfo, CartError]:
    errors = delivery_field_errors(info)
    if errors:
        return Error(CartErrors.validation(errors))
    return Ok(info)


__all__ = ("PHONE_PATTERN", "EMAIL_PATTERN", "delivery_field_errors", "validate_delivery")

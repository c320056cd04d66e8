"""Enquiry submission: validate, persist, then revalidate the contact page."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional

from werkzeug.datastructures import MultiDict

from finwage.constants import ENQUIRY_STATUS_NEW
from finwage.forms import EnquiryForm
from finwage.services.revalidation import Revalidator
from integrations.pocketbase.client import PocketBaseClient

logger = logging.getLogger(__name__)

ENQUIRY_COLLECTION = "enquiries"
CONTACT_DOMAIN = "contact"


class EnquiryValidationError(ValueError):
    """Submitted enquiry failed validation; nothing was written."""

    def __init__(self, errors: Dict[str, List[str]]) -> None:
        super().__init__("Validation failed")
        self.errors = errors


@dataclass
class EnquiryResult:
    id: str
    record: Dict[str, Any]
    revalidated: bool = True


def phone_digits(phone: Optional[str]) -> Optional[int]:
    """Keep only the digits of a phone number; the backend field is numeric."""
    if not phone:
        return None
    digits = re.sub(r"\D", "", phone)
    return int(digits) if digits else None


def _as_formdata(data: Mapping[str, Any]) -> MultiDict:
    if isinstance(data, MultiDict):
        return data
    return MultiDict({key: str(value) for key, value in data.items() if value is not None})


class ContactService:
    def __init__(self, client: PocketBaseClient, revalidator: Revalidator) -> None:
        self.client = client
        self.revalidator = revalidator

    def validate(self, data: Mapping[str, Any]) -> EnquiryForm:
        form = EnquiryForm(formdata=_as_formdata(data))
        if not form.validate():
            raise EnquiryValidationError(dict(form.errors))
        return form

    def submit_enquiry(self, data: Mapping[str, Any]) -> EnquiryResult:
        """Create an enquiry record and revalidate the contact domain.

        Validation errors raise before any write. Backend errors propagate and
        skip revalidation. A failed revalidation is logged and reported through
        ``EnquiryResult.revalidated`` without failing the submission.
        """
        form = self.validate(data)

        payload: Dict[str, Any] = {
            "name": form.name.data,
            "email": form.email.data,
            "message": form.message.data,
            "interest": form.interest.data,
            "status": ENQUIRY_STATUS_NEW,
        }
        if form.company.data:
            payload["company"] = form.company.data
        phone = phone_digits(form.phone.data)
        if phone is not None:
            payload["phone"] = phone

        record = self.client.create_record(ENQUIRY_COLLECTION, payload)
        logger.info(
            "Enquiry created",
            extra={"enquiry_id": record.get("id"), "interest": payload["interest"]},
        )

        result = self.revalidator.revalidate_domain(CONTACT_DOMAIN)
        if not result.ok:
            logger.warning("Enquiry %s saved but revalidation failed: %s", record.get("id"), result.failed)

        return EnquiryResult(id=record.get("id", ""), record=record, revalidated=result.ok)

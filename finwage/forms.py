"""WTForms definitions for the public site."""

from wtforms import Form, SelectField, StringField, TextAreaField
from wtforms.validators import DataRequired, Email, Length, Optional, Regexp

from finwage.constants import ENQUIRY_DEFAULT_INTEREST, ENQUIRY_INTEREST_CHOICES

PHONE_PATTERN = r"^\+?[\d\s\-()]+$"


def _strip(value):
    return value.strip() if isinstance(value, str) else value


def _lower(value):
    return value.lower() if isinstance(value, str) else value


def _default_interest(value):
    return value or ENQUIRY_DEFAULT_INTEREST


class EnquiryForm(Form):
    """Contact/enquiry submission.

    A plain ``wtforms.Form`` so the contact service can validate JSON bodies
    outside of a request context.
    """

    name = StringField(
        "Name",
        filters=[_strip],
        validators=[
            DataRequired(message="Name is required"),
            Length(min=2, max=100, message="Name must be between 2 and 100 characters"),
        ],
    )
    email = StringField(
        "Email",
        filters=[_strip, _lower],
        validators=[
            DataRequired(message="Email is required"),
            Email(message="Please enter a valid email address"),
        ],
    )
    company = StringField(
        "Company",
        filters=[_strip],
        validators=[Optional(), Length(max=200, message="Company name must not exceed 200 characters")],
    )
    phone = StringField(
        "Phone",
        filters=[_strip],
        validators=[Optional(), Regexp(PHONE_PATTERN, message="Please enter a valid phone number")],
    )
    interest = SelectField(
        "Interest",
        choices=ENQUIRY_INTEREST_CHOICES,
        default=ENQUIRY_DEFAULT_INTEREST,
        filters=[_strip, _default_interest],
    )
    message = TextAreaField(
        "Message",
        filters=[_strip],
        validators=[
            DataRequired(message="Message is required"),
            Length(min=10, max=1000, message="Message must be between 10 and 1000 characters"),
        ],
    )

"""
Form definitions served by the intake services.
"""

from typing import Dict

from schemas import FieldSpec, FormSchema

INTEREST_OPTIONS = ("Business Operations", "Contact Center", "IT Support", "Professionals")
INTEREST_FIELD = "What are you interested in?"

CONTACT_SCHEMA = FormSchema(
    form="contact",
    fields=(
        FieldSpec(name="Name", type="string", required=True, min=1, max=200),
        FieldSpec(name="Email", type="email", required=True),
        FieldSpec(name="Contact Number", type="phone", min=0, max=40),
        FieldSpec(name="Preferred Date", type="date"),
        FieldSpec(name="Preferred Time", type="time"),
        FieldSpec(name=INTEREST_FIELD, type="enum", required=True, options=INTEREST_OPTIONS),
        FieldSpec(name="Comments", type="string", min=0, max=5000),
    ),
)

JOIN_SCHEMA = FormSchema(
    form="join",
    fields=(
        FieldSpec(name="Name", type="string", required=True, min=1, max=200),
        FieldSpec(name="Email", type="email", required=True),
        FieldSpec(name="Phone", type="phone", min=0, max=40),
        FieldSpec(name="Skills", type="strArrayCapped"),
        FieldSpec(name="Education", type="strArrayCapped"),
        FieldSpec(name="Certification", type="strArrayCapped"),
        FieldSpec(name="Hobbies", type="strArrayCapped"),
        FieldSpec(name=INTEREST_FIELD, type="enum", required=True, options=INTEREST_OPTIONS),
        FieldSpec(name="Continued Education", type="strArrayCapped"),
        FieldSpec(name="Experience", type="strArrayCapped"),
        FieldSpec(name="Tell us about yourself", type="string", min=0, max=5000),
    ),
)

FORM_SCHEMAS: Dict[str, FormSchema] = {
    CONTACT_SCHEMA.form: CONTACT_SCHEMA,
    JOIN_SCHEMA.form: JOIN_SCHEMA,
}

KNOWN_FORMS = frozenset(FORM_SCHEMAS)

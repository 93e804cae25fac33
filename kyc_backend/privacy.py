"""Redaction of identity data before it is written to the audit trail."""

# Numbers keep their last four characters, the way Aadhaar and PAN are
# printed on masked copies.
ID_NUMBER_FIELDS = {"aadhaar_number", "pan_number", "id_number", "phone", "mobile"}
# Everything else personal keeps only the first letter of each word.
PERSONAL_FIELDS = {
    "name", "full_name", "father_name", "user_entered_name", "verified_name",
    "dob", "date_of_birth", "address", "email",
}

VISIBLE_DIGITS = 4


def mask_id_number(value) -> str:
    s = "".join(str(value).split())
    if len(s) <= VISIBLE_DIGITS:
        return "X" * VISIBLE_DIGITS
    return "X" * (len(s) - VISIBLE_DIGITS) + s[-VISIBLE_DIGITS:]


def mask_personal(value) -> str:
    return " ".join(word[0] + "*" * (len(word) - 1) for word in str(value).split())


def _redact_field(key, value):
    name = str(key).lower()
    if value in (None, ""):
        return value
    if name in ID_NUMBER_FIELDS:
        return mask_id_number(value)
    if name in PERSONAL_FIELDS:
        return mask_personal(value)
    return redact(value)


def redact(payload):
    """Copy of ``payload`` with identity fields masked at any depth."""
    if isinstance(payload, dict):
        return {k: _redact_field(k, v) for k, v in payload.items()}
    if isinstance(payload, (list, tuple)):
        return [redact(item) for item in payload]
    return payload

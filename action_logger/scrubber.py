"""PII scrubbing for event payloads."""

REDACTED = "[REDACTED]"

PII_FIELDS = frozenset(
    ["password", "email", "phone", "ssn", "credit_card", "token", "secret"]
)


def scrub_pii(data: dict | None, recursive: bool = False) -> dict | None:
    """Return a copy of *data* with denylisted keys redacted.

    Keys match case-sensitively. Only top-level keys are inspected unless
    *recursive* is set, in which case nested mappings and lists of mappings
    are scrubbed too. The result of scrubbing an already scrubbed mapping
    is equal to its input.
    """
    if data is None:
        return None

    scrubbed = {}
    for key, value in data.items():
        if key in PII_FIELDS:
            scrubbed[key] = REDACTED
        elif recursive:
            scrubbed[key] = _scrub_value(value)
        else:
            scrubbed[key] = value
    return scrubbed


def _scrub_value(value):
    if isinstance(value, dict):
        return scrub_pii(value, recursive=True)
    if isinstance(value, (list, tuple)):
        return [_scrub_value(item) for item in value]
    return value

# docredact/core/definitions.py

"""Entity type constants and ranking tables for PII detection in documents."""


class EntityType:
    """Constants representing detectable PII entity types."""

    # Structured (pattern) PII
    EMAIL = "email"
    PHONE = "phone"
    SSN = "ssn"
    CREDIT_CARD = "credit_card"
    IP = "ip"
    URL = "url"
    ADDRESS = "address"
    DOB = "dob"
    PASSPORT = "passport"
    BANK_ACCOUNT = "bank_account"
    TAX_ID = "tax_id"
    AGE = "age"

    # Recognizer (NER) PII
    NAME = "name"
    ORGANIZATION = "organization"
    LOCATION = "location"

    # User-defined rules
    CUSTOM = "custom"


class EntitySource:
    """Subsystem that produced an entity."""

    PATTERN = "pattern"
    ML = "ml"
    CUSTOM = "custom"


# Overlap resolution ranking, highest first. Custom rules rank above name.
PRIORITY_ORDER = [
    EntityType.EMAIL,
    EntityType.PHONE,
    EntityType.SSN,
    EntityType.CREDIT_CARD,
    EntityType.IP,
    EntityType.DOB,
    EntityType.PASSPORT,
    EntityType.BANK_ACCOUNT,
    EntityType.TAX_ID,
    EntityType.ADDRESS,
    EntityType.AGE,
    EntityType.URL,
    EntityType.CUSTOM,
    EntityType.NAME,
    EntityType.ORGANIZATION,
    EntityType.LOCATION,
]

# Types the context decider always redacts.
SENSITIVE_TYPES = frozenset(
    [
        EntityType.EMAIL,
        EntityType.PHONE,
        EntityType.SSN,
        EntityType.CREDIT_CARD,
        EntityType.IP,
        EntityType.DOB,
        EntityType.PASSPORT,
        EntityType.BANK_ACCOUNT,
        EntityType.TAX_ID,
        EntityType.AGE,
        EntityType.ADDRESS,
    ]
)

# Entities whose proximity marks a name or location as personal.
CONTACT_TYPES = frozenset([EntityType.EMAIL, EntityType.PHONE, EntityType.URL])

SUGGESTED_REPLACEMENTS = {
    EntityType.EMAIL: "[email redacted]",
    EntityType.PHONE: "[phone redacted]",
    EntityType.SSN: "[SSN redacted]",
    EntityType.CREDIT_CARD: "[card redacted]",
    EntityType.IP: "[IP redacted]",
    EntityType.URL: "[URL redacted]",
    EntityType.ADDRESS: "[address redacted]",
    EntityType.DOB: "[DOB redacted]",
    EntityType.PASSPORT: "[passport redacted]",
    EntityType.BANK_ACCOUNT: "[account redacted]",
    EntityType.TAX_ID: "[tax ID redacted]",
    EntityType.AGE: "[age redacted]",
    EntityType.NAME: "[Name Redacted]",
    EntityType.ORGANIZATION: "[Organization Redacted]",
    EntityType.LOCATION: "[Location Redacted]",
    EntityType.CUSTOM: "[custom redacted]",
}


def suggested_replacement(entity_type: str) -> str:
    """Returns the replacement label for an entity type."""
    return SUGGESTED_REPLACEMENTS.get(entity_type, f"[{entity_type} redacted]")


def priority_rank(entity_type: str) -> int:
    """Returns the rank of a type in PRIORITY_ORDER (lower wins).

    Unknown types rank below every known type.
    """
    try:
        return PRIORITY_ORDER.index(entity_type)
    except ValueError:
        return len(PRIORITY_ORDER)

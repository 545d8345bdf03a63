# docredact/logic/validators.py

"""Validation strategies for pattern-matched PII categories."""

import re
import logging
from abc import ABC, abstractmethod
from typing import Dict, Optional

from docredact.core.definitions import EntityType

logger = logging.getLogger(__name__)


class ValidationLogic:
    """Utility methods shared by the validators."""

    # Pre-compiled regex patterns for performance
    NON_DIGIT = re.compile(r"[^0-9]")
    DATE_PARTS = re.compile(r"\d+")

    @staticmethod
    def digits(text: str) -> str:
        """Returns only the digits of text."""
        return ValidationLogic.NON_DIGIT.sub("", text)

    @staticmethod
    def luhn_check(digits: str) -> bool:
        """Performs Modulus 10 (Luhn) checksum validation.

        Args:
            digits: Numeric string to validate

        Returns:
            True if checksum is valid
        """
        if not digits.isdigit():
            return False

        total = 0
        for i, digit in enumerate(reversed(digits)):
            n = int(digit)
            if i % 2 == 1:
                n *= 2
                if n > 9:
                    n -= 9
            total += n

        return total % 10 == 0


class ValidatorStrategy(ABC):
    """Base class for category-specific validation strategies."""

    @abstractmethod
    def validate(self, text: str) -> bool:
        """Checks a matched value beyond what the regex expresses.

        Args:
            text: Matched text to validate

        Returns:
            True if the match should be kept
        """
        pass


class EmailValidator(ValidatorStrategy):
    """Rejects matches shorter than a plausible address."""

    MIN_LENGTH = 5

    def validate(self, text: str) -> bool:
        return len(text) >= self.MIN_LENGTH and "@" in text


class PhoneValidator(ValidatorStrategy):
    """Phone numbers carry 10 to 14 digits."""

    MIN_LENGTH = 10

    def validate(self, text: str) -> bool:
        if len(text) < self.MIN_LENGTH:
            return False
        return 10 <= len(ValidationLogic.digits(text)) <= 14


class SSNValidator(ValidatorStrategy):
    """Rejects reserved area, group and serial numbers."""

    def validate(self, text: str) -> bool:
        digits = ValidationLogic.digits(text)
        if len(digits) != 9:
            return False
        area, group, serial = digits[:3], digits[3:5], digits[5:]
        if area in ("000", "666") or area.startswith("9"):
            return False
        return group != "00" and serial != "0000"


class CreditCardValidator(ValidatorStrategy):
    """Card numbers are 13 to 19 digits long and pass the Luhn checksum."""

    def validate(self, text: str) -> bool:
        digits = ValidationLogic.digits(text)
        if not 13 <= len(digits) <= 19:
            return False
        return ValidationLogic.luhn_check(digits)


class IPValidator(ValidatorStrategy):
    """Dotted quad with every octet in 0-255."""

    def validate(self, text: str) -> bool:
        octets = text.split(".")
        if len(octets) != 4:
            return False
        return all(o.isdigit() and 0 <= int(o) <= 255 for o in octets)


class DateValidator(ValidatorStrategy):
    """Numeric dates need a day and month that can exist."""

    def validate(self, text: str) -> bool:
        parts = [int(p) for p in ValidationLogic.DATE_PARTS.findall(text)]
        year_parts = [p for p in parts if 1900 <= p <= 2099]
        if not year_parts:
            return False

        # Month-name dates carry a single day number besides the year
        small = [p for p in parts if p < 100]
        if len(small) == 1:
            return 1 <= small[0] <= 31
        if len(small) != 2:
            return False

        first, second = small
        if not (1 <= first <= 31 and 1 <= second <= 31):
            return False
        return first <= 12 or second <= 12


class PassportValidator(ValidatorStrategy):
    """Passport numbers mix in at least one digit."""

    def validate(self, text: str) -> bool:
        return any(ch.isdigit() for ch in text)


class BankAccountValidator(ValidatorStrategy):
    """Account numbers are IBAN-shaped or long digit runs."""

    def validate(self, text: str) -> bool:
        compact = text.replace(" ", "")
        if compact[:2].isalpha():
            return 15 <= len(compact) <= 34
        return 9 <= len(compact) <= 18 and compact.isdigit()


class AgeValidator(ValidatorStrategy):
    """Ages are small positive integers."""

    def validate(self, text: str) -> bool:
        digits = ValidationLogic.DATE_PARTS.findall(text)
        if not digits:
            return False
        return 1 <= int(digits[0]) <= 120


# Cache for validator instances to avoid repeated construction
_validator_cache: Dict[str, ValidatorStrategy] = {}


def get_validator(entity_type: str) -> Optional[ValidatorStrategy]:
    """Factory method to retrieve a category-specific validator.

    Uses caching to reuse validator instances (Flyweight pattern).

    Args:
        entity_type: Pattern category (e.g., EntityType.PHONE)

    Returns:
        ValidatorStrategy instance or None if the category needs no validation
    """
    if entity_type in _validator_cache:
        return _validator_cache[entity_type]

    lookup = {
        EntityType.EMAIL: EmailValidator,
        EntityType.PHONE: PhoneValidator,
        EntityType.SSN: SSNValidator,
        EntityType.CREDIT_CARD: CreditCardValidator,
        EntityType.IP: IPValidator,
        EntityType.DOB: DateValidator,
        EntityType.PASSPORT: PassportValidator,
        EntityType.BANK_ACCOUNT: BankAccountValidator,
        EntityType.AGE: AgeValidator,
    }

    validator_class = lookup.get(entity_type)

    if validator_class:
        instance = validator_class()
        _validator_cache[entity_type] = instance
        return instance

    logger.debug(f"No validator registered for category: {entity_type}")
    return None

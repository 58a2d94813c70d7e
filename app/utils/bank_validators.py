"""
Bank detail validation.

Rules for North Macedonian payout details: account number format per bank,
IBAN structure with its MOD-97-10 checksum, and SWIFT/BIC format. Each
validator returns a RuleViolation or None instead of raising, so a caller
can report every problem with a submission at once.
"""

import re
from dataclasses import dataclass

from pydantic import BaseModel, Field

IBAN_LENGTH = 19
IBAN_COUNTRY = "MK"
IBAN_PATTERN = re.compile(r"^MK\d{2}[A-Z0-9]{3}\d{12}$")
SWIFT_PATTERN = re.compile(
    r"^[A-Z]{4}[A-Z]{2}[A-Z0-9]{2}([A-Z0-9]{3})?$", re.IGNORECASE
)
HALKBANK_MARKERS = ("halkbank", "halk")
HALKBANK_ACCOUNT_LENGTH = 15
ACCOUNT_MIN_LENGTH = 8
ACCOUNT_MAX_LENGTH = 20

# Largest chunk that keeps the running remainder within 9 digits
_MOD97_CHUNK = 7


@dataclass(frozen=True)
class RuleViolation:
    """A single failed bank detail rule."""

    field: str
    code: str
    message: str

    def to_dict(self) -> dict[str, str]:
        return {"field": self.field, "code": self.code, "message": self.message}


class BankDetails(BaseModel):
    """Payout bank details as submitted by an affiliate."""

    bank_name: str = Field(min_length=1, max_length=255)
    account_number: str = Field(min_length=1, max_length=100)
    account_holder_name: str = Field(min_length=1, max_length=255)
    iban: str | None = None
    swift_code: str | None = None
    bank_address: str | None = None


def clean_account_number(account_number: str) -> str:
    """Strip spaces and dashes from an account number."""
    return re.sub(r"[\s-]", "", account_number or "")


def clean_iban(iban: str) -> str:
    """Strip whitespace and upper-case an IBAN."""
    return re.sub(r"\s", "", iban or "").upper()


def is_halkbank(bank_name: str | None) -> bool:
    """Check if a bank name refers to Halkbank."""
    name = (bank_name or "").lower()
    return any(marker in name for marker in HALKBANK_MARKERS)


def validate_account_number(
    account_number: str, bank_name: str | None = None
) -> RuleViolation | None:
    """
    Validate an account number against the bank's format.

    Halkbank accounts are exactly 15 digits; other banks accept 8-20
    digits. Spaces and dashes are ignored.

    Args:
        account_number: Raw account number
        bank_name: Bank name used to pick the rule

    Returns:
        RuleViolation or None if valid
    """
    clean = clean_account_number(account_number)

    if not clean:
        return RuleViolation(
            "account_number", "required", "Account number is required"
        )

    if not clean.isdigit() or not clean.isascii():
        return RuleViolation(
            "account_number",
            "digits_only",
            "Account number must contain only numbers",
        )

    if is_halkbank(bank_name):
        if len(clean) != HALKBANK_ACCOUNT_LENGTH:
            return RuleViolation(
                "account_number",
                "halkbank_length",
                "Halkbank account number must be exactly 15 digits",
            )
        return None

    if not ACCOUNT_MIN_LENGTH <= len(clean) <= ACCOUNT_MAX_LENGTH:
        return RuleViolation(
            "account_number",
            "length",
            "Account number must be 8-20 digits and contain only numbers",
        )

    return None


def iban_checksum_valid(iban: str) -> bool:
    """
    Check an IBAN's MOD-97-10 checksum.

    The first four characters are moved to the end, letters become
    two-digit numbers (A=10 ... Z=35) and the resulting number must leave
    remainder 1 modulo 97. The remainder is folded chunk by chunk from the
    left so no big-number arithmetic is needed.

    Args:
        iban: Cleaned, upper-case IBAN

    Returns:
        True if the checksum holds
    """
    rearranged = iban[4:] + iban[:4]
    numeric = "".join(
        str(ord(char) - 55) if char.isalpha() else char
        for char in rearranged
    )

    remainder = 0
    for start in range(0, len(numeric), _MOD97_CHUNK):
        chunk = numeric[start:start + _MOD97_CHUNK]
        remainder = int(f"{remainder}{chunk}") % 97

    return remainder == 1


def validate_iban(iban: str | None) -> RuleViolation | None:
    """
    Validate an optional North Macedonian IBAN.

    Args:
        iban: Raw IBAN, may contain spaces or be lower case

    Returns:
        RuleViolation or None if valid or absent
    """
    if not iban:
        return None

    clean = clean_iban(iban)

    if len(clean) != IBAN_LENGTH:
        return RuleViolation(
            "iban",
            "length",
            "IBAN must be 19 characters for North Macedonia",
        )

    if not clean.startswith(IBAN_COUNTRY):
        return RuleViolation(
            "iban", "country", "IBAN must start with MK"
        )

    if not IBAN_PATTERN.match(clean):
        return RuleViolation(
            "iban",
            "format",
            "Invalid North Macedonian IBAN format "
            "(MK + 2 check digits + 3 bank code + 12 digits)",
        )

    if not iban_checksum_valid(clean):
        return RuleViolation(
            "iban", "checksum", "IBAN checksum is invalid"
        )

    return None


def validate_swift(swift_code: str | None) -> RuleViolation | None:
    """
    Validate an optional SWIFT/BIC code (8 or 11 characters).

    Args:
        swift_code: Raw code, case-insensitive

    Returns:
        RuleViolation or None if valid or absent
    """
    if not swift_code:
        return None

    if not SWIFT_PATTERN.match(swift_code.strip()):
        return RuleViolation(
            "swift_code",
            "format",
            "Invalid SWIFT/BIC code (8 or 11 characters)",
        )

    return None


def validate_bank_details(details: BankDetails) -> list[RuleViolation]:
    """Run every rule against a submission and collect the violations."""
    checks = (
        validate_account_number(details.account_number, details.bank_name),
        validate_iban(details.iban),
        validate_swift(details.swift_code),
    )
    return [violation for violation in checks if violation is not None]

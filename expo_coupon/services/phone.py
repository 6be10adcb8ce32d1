# expo_coupon/services/phone.py
from __future__ import annotations

import re
from dataclasses import dataclass, field

_NON_DIGITS = re.compile(r"\D")


@dataclass(frozen=True)
class NumberingPlan:
    """Country calling code plus the shape of a local mobile number."""

    country_code: str = "968"
    local_pattern: str = r"^[79]\d{7}$"
    local_length: int = 8
    _regex: re.Pattern = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        object.__setattr__(self, "_regex", re.compile(self.local_pattern))

    @classmethod
    def from_config(cls, config) -> "NumberingPlan":
        return cls(
            country_code=str(config.get("PHONE_COUNTRY_CODE") or "968"),
            local_pattern=config.get("PHONE_LOCAL_PATTERN") or r"^[79]\d{7}$",
            local_length=int(config.get("PHONE_LOCAL_LENGTH") or 8),
        )

    def _strip_once(self, digits: str) -> str:
        if len(digits) > self.local_length and digits.startswith("00"):
            digits = digits[2:]
        if len(digits) > self.local_length and digits.startswith(self.country_code):
            digits = digits[len(self.country_code):]
        if len(digits) > self.local_length and digits.startswith("0"):
            digits = digits[1:]
        return digits

    def normalize(self, raw: str | None) -> str:
        """
        Reduce a free-form phone string to the local number.

        Keeps digits only, then drops an international "00" prefix, the country
        code and one trunk "0". A prefix is only dropped while the number is
        still longer than a local number, so a local number that happens to
        start with the country code is left alone. The pass is repeated until
        nothing changes, which makes normalize(normalize(x)) == normalize(x).
        Leading zeros beyond the trunk "0" are read as repeated "00" prefixes.
        Never fails; invalid input yields whatever digits remain.
        """
        digits = _NON_DIGITS.sub("", raw or "")
        while True:
            stripped = self._strip_once(digits)
            if stripped == digits:
                return digits
            digits = stripped

    def is_valid(self, local: str) -> bool:
        return bool(self._regex.fullmatch(local or ""))

    def to_international(self, raw: str | None) -> str:
        return f"{self.country_code}{self.normalize(raw)}"


OMAN = NumberingPlan()


def normalize(raw: str | None, plan: NumberingPlan = OMAN) -> str:
    return plan.normalize(raw)


def is_valid(local: str, plan: NumberingPlan = OMAN) -> bool:
    return plan.is_valid(local)

"""
Treatment item helpers.

A prescribed line item is either a medication or a service.  When a caller does
not say which, the item is a medication if it carries any dosing detail
(dosage, frequency or duration) and a service otherwise.
"""

from __future__ import annotations

import re
from typing import Any, Mapping, Optional, Union

MEDICATION = "medication"
SERVICE = "service"

DOSING_FIELDS = ("dosage", "frequency", "duration")


def _field(item: Union[Mapping[str, Any], Any], name: str) -> Any:
    if isinstance(item, Mapping):
        return item.get(name)
    return getattr(item, name, None)


def has_dosing_details(item: Union[Mapping[str, Any], Any]) -> bool:
    """True if any of dosage, frequency or duration is non-empty."""
    for name in DOSING_FIELDS:
        value = _field(item, name)
        if value is not None and str(value).strip():
            return True
    return False


def classify_item(item: Union[Mapping[str, Any], Any]) -> str:
    """Return ``"medication"`` or ``"service"`` for a treatment item.

    An explicit ``item_type`` wins; otherwise the dosing-field rule applies.
    """
    explicit = _field(item, "item_type")
    if explicit:
        return getattr(explicit, "value", explicit)
    return MEDICATION if has_dosing_details(item) else SERVICE


def compute_amount(quantity: float, rate: float) -> float:
    return quantity * rate


def parse_duration_days(duration: Optional[str]) -> Optional[int]:
    """Extract a day count from free text such as ``"5 days"``.

    Only the digits are kept, so ``"1 week"`` gives 1.  Returns None when the
    text holds no digits.
    """
    if not duration:
        return None
    digits = re.sub(r"\D", "", str(duration))
    if not digits:
        return None
    return int(digits) or None

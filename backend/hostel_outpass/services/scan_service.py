"""Resolve a gate scan or a typed roll number to one outpass."""
import re
from typing import Callable, List

from hostel_outpass.exceptions import NotFoundError, ValidationError
from hostel_outpass.models import GATE_ACTIONABLE_STATUSES, Outpass
from hostel_outpass.repositories import OutpassRepository

# OP-<ROLLNO> or OP-<ROLLNO>-<timestamp>
TOKEN_PATTERN = re.compile(r'^OP-([A-Z0-9]+)(?:-\d+)?$', re.IGNORECASE)


def extract_roll_no(token: str) -> str:
    """Roll number carried by ``token``; a bare roll number is returned upper-cased."""
    match = TOKEN_PATTERN.match(token.strip())
    if match:
        return match.group(1).upper()
    return token.strip().upper()


class GateScanMatcher:
    """Ordered fallback: exact token, derived roll number, then substring."""

    def __init__(self, outpasses: OutpassRepository):
        self.outpasses = outpasses

    def find_outpass_by_token(self, token_or_roll_no: str) -> Outpass:
        raw = (token_or_roll_no or '').strip()
        if not raw:
            raise ValidationError("Scan a barcode or enter a roll number")

        strategies: List[Callable[[str], List[Outpass]]] = [
            self.outpasses.find_by_token,
            lambda value: self.outpasses.find_by_roll(extract_roll_no(value)),
            self.outpasses.search,
        ]
        for strategy in strategies:
            matches = strategy(raw)
            if matches:
                return self.pick(matches)

        raise NotFoundError(f"No outpass found for {raw}")

    @staticmethod
    def pick(matches: List[Outpass]) -> Outpass:
        """Gate-actionable records first, then the most recent."""
        return min(matches, key=lambda o: (
            o.status not in GATE_ACTIONABLE_STATUSES,
            -o.created_at.timestamp(),
            -o.id
        ))

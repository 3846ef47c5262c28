"""Gate security actions: record exits and returns."""
import logging
from datetime import datetime
from typing import Callable, List

from hostel_outpass.exceptions import ValidationError
from hostel_outpass.models import GateAction, GateLog, OutpassStatus
from hostel_outpass.repositories import GateLogRepository
from hostel_outpass.services.outpass_service import OutpassService, system_clock
from hostel_outpass.services.scan_service import GateScanMatcher
from hostel_outpass.utils.helpers import as_naive_utc

logger = logging.getLogger(__name__)

VALID_FROM = {
    GateAction.EXIT: frozenset({OutpassStatus.APPROVED}),
    GateAction.RETURN: frozenset({OutpassStatus.EXITED, OutpassStatus.LATE}),
}


def parse_gate_action(value) -> GateAction:
    if isinstance(value, GateAction):
        return value
    try:
        return GateAction(str(value).strip().lower())
    except ValueError:
        raise ValidationError("Action must be either 'exit' or 'return'")


class GateService:
    """Drives Exited/Returned transitions and keeps the gate log."""

    def __init__(
        self,
        outpass_service: OutpassService,
        gate_logs: GateLogRepository,
        matcher: GateScanMatcher,
        clock: Callable[[], datetime] = system_clock
    ):
        self.outpass_service = outpass_service
        self.gate_logs = gate_logs
        self.matcher = matcher
        self.clock = clock

    def find_outpass_by_token(self, token_or_roll_no: str):
        return self.matcher.find_outpass_by_token(token_or_roll_no)

    def record_gate_action(self, outpass_id: str, action, gate: str, security_id: str) -> GateLog:
        action = parse_gate_action(action)
        gate = (gate or '').strip() or 'Unknown Gate'
        security_id = (security_id or '').strip() or 'Unknown'

        outpass = self.outpass_service.get_outpass(outpass_id)
        now = self.clock()

        if action == GateAction.EXIT:
            self.outpass_service.transition(
                outpass, OutpassStatus.EXITED,
                {'exit_time': now, 'exit_gate': gate},
                expected_from=VALID_FROM[action], action_label='exit'
            )
        else:
            self.outpass_service.transition(
                outpass, OutpassStatus.RETURNED,
                {'actual_return_at': now, 'return_gate': gate},
                expected_from=VALID_FROM[action], action_label='return'
            )

        log = self.gate_logs.add(GateLog(
            outpass_id=outpass.code,
            outpass_record_id=outpass.id,
            student_id=outpass.student_id,
            action=action,
            gate=gate,
            security_id=security_id,
            timestamp=as_naive_utc(now)
        ))
        logger.info("Gate log %s: %s for outpass %s at %s by %s",
                    log.display_id, action.value, outpass.code, gate, security_id)
        return log

    def record_exit(self, outpass_id: str, gate: str, security_id: str) -> GateLog:
        return self.record_gate_action(outpass_id, GateAction.EXIT, gate, security_id)

    def record_return(self, outpass_id: str, gate: str, security_id: str) -> GateLog:
        return self.record_gate_action(outpass_id, GateAction.RETURN, gate, security_id)

    def list_gate_logs(self, outpass_id: str = None, student_id: int = None,
                       action=None, gate: str = None) -> List[GateLog]:
        return self.gate_logs.list_by_filter(
            outpass_id=outpass_id,
            student_id=student_id,
            action=parse_gate_action(action) if action else None,
            gate=gate
        )

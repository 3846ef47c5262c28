"""Gate exits, returns and the gate log."""
import pytest

from hostel_outpass.exceptions import InvalidStateError, NotFoundError, ValidationError
from hostel_outpass.models import (
    GateAction, GateLog, Notification, NotificationCategory, NotificationChannel, OutpassStatus
)

from conftest import NOW


def transition_notifications(outpass, status):
    return (Notification.query
            .filter_by(outpass_record_id=outpass.id, category=NotificationCategory.STATUS_CHANGE,
                       outpass_status=status)
            .order_by(Notification.id)
            .all())


def test_exit_scenario(services, dispatcher, student, make_outpass):
    make_outpass(student, status=OutpassStatus.APPROVED, barcode_token='CS12345')

    with pytest.raises(InvalidStateError) as excinfo:
        services.gate_service.record_return('OP-CS12345', 'Gate 1', 'SEC-001')
    assert 'Approved' in excinfo.value.message
    assert GateLog.query.count() == 0

    log = services.gate_service.record_exit('OP-CS12345', 'Gate 1', 'SEC-001')

    outpass = services.outpass_service.get_outpass('OP-CS12345')
    assert outpass.status == OutpassStatus.EXITED
    assert outpass.exit_gate == 'Gate 1'
    assert outpass.exit_time == NOW.replace(tzinfo=None)
    assert log.action == GateAction.EXIT
    assert log.display_id == 'GL-001'
    assert log.security_id == 'SEC-001'

    channels = [n.channel for n in transition_notifications(outpass, 'Exited')]
    assert channels == [NotificationChannel.EMAIL, NotificationChannel.SMS]
    assert len(dispatcher.sent) == 2


def test_return_after_exit(services, student, make_outpass):
    make_outpass(student, status=OutpassStatus.APPROVED, barcode_token='CS12345')
    services.gate_service.record_exit('OP-CS12345', 'Gate 1', 'SEC-001')

    services.gate_service.record_return('OP-CS12345', 'Gate 2', 'SEC-002')

    outpass = services.outpass_service.get_outpass('OP-CS12345')
    assert outpass.status == OutpassStatus.RETURNED
    assert outpass.return_gate == 'Gate 2'
    assert outpass.barcode_token is None
    assert [log.action for log in services.gate_service.list_gate_logs(outpass_id='OP-CS12345')] == \
        [GateAction.RETURN, GateAction.EXIT]


def test_late_student_can_still_return(services, student, make_outpass):
    make_outpass(student, status=OutpassStatus.LATE)

    services.gate_service.record_gate_action('OP-CS12345', 'return', 'Gate 1', 'SEC-001')

    assert services.outpass_service.get_outpass('OP-CS12345').status == OutpassStatus.RETURNED


@pytest.mark.parametrize('status', [
    OutpassStatus.PENDING, OutpassStatus.EXITED, OutpassStatus.LATE,
    OutpassStatus.REJECTED, OutpassStatus.RETURNED, OutpassStatus.CANCELLED
])
def test_exit_requires_approved(services, student, make_outpass, status):
    make_outpass(student, status=status)

    with pytest.raises(InvalidStateError) as excinfo:
        services.gate_service.record_exit('OP-CS12345', 'Gate 1', 'SEC-001')

    assert excinfo.value.current_status == status
    assert status.value in excinfo.value.message


def test_repeated_exit_scan_is_refused(services, dispatcher, student, make_outpass):
    make_outpass(student, status=OutpassStatus.APPROVED)
    services.gate_service.record_exit('OP-CS12345', 'Gate 1', 'SEC-001')

    with pytest.raises(InvalidStateError):
        services.gate_service.record_exit('OP-CS12345', 'Gate 1', 'SEC-001')

    assert GateLog.query.count() == 1
    assert len(dispatcher.sent) == 2


def test_invalid_action(services, student, make_outpass):
    make_outpass(student, status=OutpassStatus.APPROVED)

    with pytest.raises(ValidationError):
        services.gate_service.record_gate_action('OP-CS12345', 'teleport', 'Gate 1', 'SEC-001')


def test_unknown_outpass(services):
    with pytest.raises(NotFoundError):
        services.gate_service.record_exit('OP-NOBODY', 'Gate 1', 'SEC-001')


def test_missing_gate_and_guard_are_recorded_as_unknown(services, student, make_outpass):
    make_outpass(student, status=OutpassStatus.APPROVED)

    log = services.gate_service.record_exit('OP-CS12345', '', None)

    assert log.gate == 'Unknown Gate'
    assert log.security_id == 'Unknown'

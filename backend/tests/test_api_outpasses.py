"""End-to-end flows through the HTTP API."""
import io

import pytest

from hostel_outpass.models import OutpassStatus, Student, UserRole

from conftest import login


@pytest.fixture(autouse=True)
def wired(services):
    """Every API test runs against the recording dispatcher and fixed clock."""
    return services


def test_full_lifecycle(client, dispatcher, student_headers, admin_headers, guard_headers, outpass_request):
    response = client.post('/api/outpasses/', json=outpass_request, headers=student_headers)
    assert response.status_code == 201
    assert response.get_json()['data']['status'] == 'Pending'

    response = client.post('/api/outpasses/OP-CS12345/approve', headers=admin_headers)
    assert response.status_code == 200
    body = response.get_json()['data']
    assert body['status'] == 'Approved'
    assert body['approved_by'] == 'AD-001'
    assert body['barcode_token'] == 'CS12345'

    response = client.get('/api/gate/scan?token=OP-CS12345-1699999999999', headers=guard_headers)
    assert response.get_json()['data']['id'] == 'OP-CS12345'

    response = client.post('/api/gate/return', json={'outpass_id': 'OP-CS12345'}, headers=guard_headers)
    assert response.status_code == 409
    assert response.get_json()['error_type'] == 'invalid_state'
    assert response.get_json()['current_status'] == 'Approved'

    response = client.post('/api/gate/exit', json={'outpass_id': 'OP-CS12345'}, headers=guard_headers)
    assert response.status_code == 200
    data = response.get_json()['data']
    assert data['outpass']['status'] == 'Exited'
    assert data['outpass']['exit_gate'] == 'Gate 1'
    assert data['gate_log']['id'] == 'GL-001'
    assert data['gate_log']['security_id'] == 'SEC-001'

    response = client.post('/api/gate/return', json={'outpass_id': 'OP-CS12345'}, headers=guard_headers)
    assert response.get_json()['data']['outpass']['status'] == 'Returned'

    response = client.get('/api/gate/logs?outpass_id=OP-CS12345', headers=admin_headers)
    assert response.get_json()['data']['total'] == 2

    # new request email, approve (sms + app), exit (email + sms), return (email + sms)
    assert len(dispatcher.sent) == 7


def test_student_sees_only_own_outpasses(client, make_student, make_outpass, student, student_headers):
    make_outpass(student)
    other = make_student(roll_no='CS22222', name='Other')
    make_outpass(other)

    response = client.get('/api/outpasses/', headers=student_headers)
    ids = [o['id'] for o in response.get_json()['data']['outpasses']]
    assert ids == ['OP-CS12345']

    response = client.get('/api/outpasses/OP-CS22222', headers=student_headers)
    assert response.status_code == 403


def test_hostel_admin_sees_own_hostel(client, make_student, make_outpass, student, admin_headers):
    make_outpass(student)
    other = make_student(roll_no='CS22222', name='Other', hostel='B Block')
    make_outpass(other)

    response = client.get('/api/outpasses/', headers=admin_headers)
    ids = [o['id'] for o in response.get_json()['data']['outpasses']]
    assert ids == ['OP-CS12345']

    response = client.post('/api/outpasses/OP-CS22222/approve', headers=admin_headers)
    assert response.status_code == 403


def test_duplicate_request_conflicts(client, student_headers, outpass_request):
    client.post('/api/outpasses/', json=outpass_request, headers=student_headers)

    response = client.post('/api/outpasses/', json=outpass_request, headers=student_headers)

    assert response.status_code == 409
    assert response.get_json()['error_type'] == 'conflict'


def test_reject_needs_reason(client, student, make_outpass, admin_headers):
    make_outpass(student)

    response = client.post('/api/outpasses/OP-CS12345/reject', json={}, headers=admin_headers)
    assert response.status_code == 400

    response = client.post('/api/outpasses/OP-CS12345/reject',
                           json={'reject_reason': 'Past curfew'}, headers=admin_headers)
    assert response.status_code == 200
    assert response.get_json()['data']['reject_reason'] == 'Past curfew'


def test_status_endpoint(client, student, make_outpass, admin_headers):
    make_outpass(student, status=OutpassStatus.EXITED)

    response = client.put('/api/outpasses/OP-CS12345/status', json={
        'status': 'Returned', 'return_time': '2024-05-10T12:00:00Z', 'return_gate': 'Gate 2'
    }, headers=admin_headers)

    assert response.status_code == 200
    assert response.get_json()['data']['actual_return_at'] == '2024-05-10T12:00:00'

    response = client.put('/api/outpasses/OP-CS12345/status', json={'status': 'Approved'},
                          headers=admin_headers)
    assert response.status_code == 409


def test_student_cannot_review(client, student, make_outpass, student_headers):
    make_outpass(student)

    response = client.post('/api/outpasses/OP-CS12345/approve', headers=student_headers)

    assert response.status_code == 403


def test_student_cancels(client, student, make_outpass, student_headers):
    make_outpass(student)

    response = client.post('/api/outpasses/OP-CS12345/cancel', headers=student_headers)

    assert response.get_json()['data']['status'] == 'Cancelled'


def test_unknown_outpass_is_404(client, admin_headers):
    response = client.get('/api/outpasses/OP-NOPE', headers=admin_headers)

    assert response.status_code == 404
    assert response.get_json()['error_type'] == 'not_found'


def test_profile_completion_flow(client, app):
    client.post('/api/auth/student/register', json={
        'email': 'new@student.example.edu', 'password': 'password123', 'name': 'New Student'
    })
    headers = login(client, '/api/auth/student/login', email='new@student.example.edu', password='password123')

    response = client.post('/api/outpasses/', json={
        'type': 'Home', 'purpose': 'Visit', 'place': 'Home', 'date': '2024-05-10',
        'expected_return_time': '20:00'
    }, headers=headers)
    assert response.status_code == 400

    response = client.put('/api/students/me/profile', json={
        'roll_no': 'cs77777', 'room_no': 'C-12', 'hostel': 'C Block',
        'contact': '98765 43210', 'parent_contact': '+91 9876543211'
    }, headers=headers)
    assert response.status_code == 200
    profile = response.get_json()['data']
    assert profile['roll_no'] == 'CS77777'
    assert profile['contact'] == '+919876543210'
    assert profile['parent_contact'] == '+919876543211'
    assert profile['profile_completed'] is True

    response = client.put('/api/students/me/profile', json={'hostel': 'D Block'}, headers=headers)
    assert response.status_code == 400

    response = client.put('/api/students/me/profile', json={'room_no': 'C-14'}, headers=headers)
    assert response.get_json()['data']['room_no'] == 'C-14'


def test_profile_rejects_bad_phone(client, make_student):
    make_student(roll_no='CS88888', completed=False)
    headers = login(client, '/api/auth/student/login', email='cs88888@student.example.edu',
                    password='password123')

    response = client.put('/api/students/me/profile', json={
        'roll_no': 'CS88888', 'room_no': 'A-1', 'hostel': 'A Block',
        'contact': '12345', 'parent_contact': '9876543211'
    }, headers=headers)

    assert response.status_code == 400


def test_bulk_import(client, make_staff):
    make_staff('warden', UserRole.SUPER_ADMIN, 'AD-000')
    headers = login(client, '/api/auth/admin/login', username='warden', password='password123')
    csv = (
        "name,email,roll_no,room_no,hostel,contact,parent_contact\n"
        "Asha Rao,asha@student.example.edu,EE10001,B-201,B Block,9876500001,9876500002\n"
        "Bad Phone,bad@student.example.edu,EE10002,B-202,B Block,123,9876500004\n"
    )

    response = client.post('/api/students/bulk', data={
        'file': (io.BytesIO(csv.encode()), 'students.csv')
    }, headers=headers, content_type='multipart/form-data')

    assert response.status_code == 201
    data = response.get_json()['data']
    assert data['created'] == 1
    assert data['failed'] == 1
    assert data['results'][1]['row'] == 3
    assert Student.query.filter_by(roll_no='EE10001').first().parent_contact == '+919876500002'


def test_hostel_admin_cannot_bulk_import(client, admin_headers):
    response = client.post('/api/students/bulk', headers=admin_headers)

    assert response.status_code == 403


def test_notifications_feed(client, dispatcher, student, make_outpass, admin_headers, student_headers):
    make_outpass(student)
    client.post('/api/outpasses/OP-CS12345/approve', headers=admin_headers)

    response = client.get('/api/notifications/?types=parent,student&outpass_id=OP-CS12345',
                          headers=admin_headers)
    data = response.get_json()['data']
    assert data['total'] == 2
    assert all(n['id'].startswith('NOT-') for n in data['notifications'])

    response = client.get('/api/notifications/?type=parent', headers=student_headers)
    notifications = response.get_json()['data']['notifications']
    assert [n['type'] for n in notifications] == ['student']
    assert notifications[0]['channel'] == 'app'


def test_feedback_on_rejected_outpass(client, dispatcher, student, make_outpass, student_headers, admin_headers):
    make_outpass(student)

    response = client.post('/api/feedback/', json={
        'outpass_id': 'OP-CS12345', 'feedback_text': 'I had permission from the warden'
    }, headers=student_headers)
    assert response.status_code == 409

    client.post('/api/outpasses/OP-CS12345/reject', json={'reject_reason': 'Past curfew'},
                headers=admin_headers)
    dispatcher.sent.clear()

    response = client.post('/api/feedback/', json={
        'outpass_id': 'OP-CS12345', 'feedback_text': 'I had permission from the warden'
    }, headers=student_headers)
    assert response.status_code == 201
    assert response.get_json()['data']['id'] == 'FB-001'
    assert dispatcher.sent == [{
        'channel': 'system',
        'address': None,
        'message': 'Student has submitted feedback regarding rejected outpass OP-CS12345.',
        'subject': None
    }]

    response = client.get('/api/feedback/?outpass_id=OP-CS12345', headers=admin_headers)
    assert response.get_json()['data']['total'] == 1


def test_swagger_spec_served(client):
    response = client.get('/api/swagger.json')

    assert response.status_code == 200
    assert '/api/gate/exit' in response.get_json()['paths']


def test_hostel_admin_feed_is_scoped(client, services, student, make_student, make_outpass, admin_headers):
    make_outpass(student)
    other = make_student(roll_no='CS22222', name='Other', hostel='B Block')
    make_outpass(other)
    services.outpass_service.update_outpass_status('OP-CS12345', 'Approved')
    services.outpass_service.update_outpass_status('OP-CS22222', 'Approved')

    response = client.get('/api/notifications/?type=parent', headers=admin_headers)
    ids = [n['outpass_id'] for n in response.get_json()['data']['notifications']]
    assert ids == ['OP-CS12345']

    response = client.get('/api/notifications/?outpass_id=OP-CS22222', headers=admin_headers)
    assert response.get_json()['data']['total'] == 0


def test_super_admin_feed_spans_hostels(client, services, student, make_student, make_outpass, make_staff):
    make_outpass(student)
    other = make_student(roll_no='CS22222', name='Other', hostel='B Block')
    make_outpass(other)
    services.outpass_service.update_outpass_status('OP-CS12345', 'Approved')
    services.outpass_service.update_outpass_status('OP-CS22222', 'Approved')
    make_staff('warden', UserRole.SUPER_ADMIN, 'AD-000')
    headers = login(client, '/api/auth/admin/login', username='warden', password='password123')

    response = client.get('/api/notifications/?type=parent', headers=headers)

    assert response.get_json()['data']['total'] == 2


def test_only_documented_health_routes(client):
    assert client.get('/health').status_code == 200
    assert client.get('/api/auth/health').status_code == 200
    assert client.get('/api/notifications/health').status_code == 404
    assert client.get('/api/students/health').status_code == 404

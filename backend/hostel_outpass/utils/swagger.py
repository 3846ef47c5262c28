"""Swagger/OpenAPI configuration for the application."""
from flask_swagger_ui import get_swaggerui_blueprint

# Swagger UI configuration
SWAGGER_URL = '/api/docs'
API_URL = '/api/swagger.json'

OUTPASS_STATUSES = ["Pending", "Approved", "Rejected", "Exited", "Returned", "Late", "Cancelled"]
OUTPASS_TYPES = ["Market", "Home", "Medical", "Academic"]

def get_swagger_blueprint():
    """Create and return swagger UI blueprint."""
    return get_swaggerui_blueprint(
        SWAGGER_URL,
        API_URL,
        config={
            'app_name': "Hostel Outpass System API",
            'defaultModelsExpandDepth': -1,
            'docExpansion': 'list',
            'filter': True,
            'supportedSubmitMethods': ['get', 'post', 'put'],
            'validatorUrl': None,
        }
    )

def _body(schema_ref: str = None, properties: dict = None, required: list = None) -> dict:
    if schema_ref:
        schema = {"$ref": f"#/components/schemas/{schema_ref}"}
    else:
        schema = {"type": "object", "properties": properties or {}}
        if required:
            schema["required"] = required
    return {"required": True, "content": {"application/json": {"schema": schema}}}

def _op(tag: str, summary: str, secured: bool = True, body: dict = None, params: list = None,
        responses: dict = None) -> dict:
    operation = {
        "tags": [tag],
        "summary": summary,
        "responses": responses or {
            "200": {"description": "Success"},
            "400": {"$ref": "#/components/responses/Error"},
            "404": {"$ref": "#/components/responses/Error"},
            "409": {"$ref": "#/components/responses/Error"}
        }
    }
    if secured:
        operation["security"] = [{"bearerAuth": []}]
    if body:
        operation["requestBody"] = body
    if params:
        operation["parameters"] = params
    return operation

def _query(name: str, description: str, schema_type: str = "string") -> dict:
    return {"name": name, "in": "query", "required": False,
            "description": description, "schema": {"type": schema_type}}

OUTPASS_ID = {"name": "outpass_id", "in": "path", "required": True,
              "description": "Outpass id, e.g. OP-CS12345", "schema": {"type": "string"}}

def generate_swagger_spec():
    """Generate OpenAPI/Swagger specification."""
    return {
        "openapi": "3.0.0",
        "info": {
            "title": "Hostel Outpass System API",
            "description": "Outpass requests, warden reviews, gate exits and returns with parent notifications",
            "version": "1.0.0"
        },
        "servers": [
            {"url": "http://127.0.0.1:5000", "description": "Development server"}
        ],
        "components": {
            "securitySchemes": {
                "bearerAuth": {"type": "http", "scheme": "bearer", "bearerFormat": "JWT"}
            },
            "responses": {
                "Error": {
                    "description": "Workflow error",
                    "content": {"application/json": {"schema": {"$ref": "#/components/schemas/Error"}}}
                }
            },
            "schemas": {
                "Error": {
                    "type": "object",
                    "properties": {
                        "error": {"type": "boolean"},
                        "message": {"type": "string"},
                        "error_type": {"type": "string", "enum": [
                            "validation_error", "authentication_error", "authorization_error",
                            "not_found", "conflict", "invalid_state", "dispatch_error"
                        ]},
                        "current_status": {"type": "string", "enum": OUTPASS_STATUSES},
                        "status_code": {"type": "integer"}
                    }
                },
                "OutpassRequest": {
                    "type": "object",
                    "required": ["type", "purpose", "place", "date", "expected_return_time"],
                    "properties": {
                        "type": {"type": "string", "enum": OUTPASS_TYPES},
                        "purpose": {"type": "string"},
                        "place": {"type": "string"},
                        "date": {"type": "string", "format": "date"},
                        "expected_return_time": {"type": "string", "example": "18:00"}
                    }
                },
                "Outpass": {
                    "type": "object",
                    "properties": {
                        "id": {"type": "string", "example": "OP-CS12345"},
                        "type": {"type": "string", "enum": OUTPASS_TYPES},
                        "status": {"type": "string", "enum": OUTPASS_STATUSES},
                        "date": {"type": "string", "format": "date"},
                        "expected_return_time": {"type": "string"},
                        "exit_time": {"type": "string", "format": "date-time", "nullable": True},
                        "actual_return_at": {"type": "string", "format": "date-time", "nullable": True},
                        "barcode_token": {"type": "string", "nullable": True},
                        "notification_sent": {"type": "boolean"},
                        "student": {"type": "object"}
                    }
                },
                "Profile": {
                    "type": "object",
                    "properties": {
                        "roll_no": {"type": "string"},
                        "room_no": {"type": "string"},
                        "hostel": {"type": "string"},
                        "contact": {"type": "string", "example": "9876543210"},
                        "parent_contact": {"type": "string", "example": "9876543211"}
                    }
                }
            }
        },
        "paths": {
            "/api/auth/student/register": {"post": _op(
                "Auth", "Register a student account", secured=False,
                body=_body(properties={"email": {"type": "string"}, "password": {"type": "string"},
                                       "name": {"type": "string"}},
                           required=["email", "password", "name"]))},
            "/api/auth/student/login": {"post": _op(
                "Auth", "Student login", secured=False,
                body=_body(properties={"email": {"type": "string"}, "password": {"type": "string"}}))},
            "/api/auth/admin/login": {"post": _op(
                "Auth", "Hostel admin login", secured=False,
                body=_body(properties={"username": {"type": "string"}, "password": {"type": "string"}}))},
            "/api/auth/gate/login": {"post": _op(
                "Auth", "Gate security login", secured=False,
                body=_body(properties={"username": {"type": "string"}, "password": {"type": "string"},
                                       "gate": {"type": "string"}}))},
            "/api/auth/me": {"get": _op("Auth", "Current user")},
            "/api/auth/refresh": {"post": _op("Auth", "Refresh the access token")},
            "/api/students/": {"get": _op("Students", "List students", params=[
                _query("hostel", "Hostel name"), _query("roll_no", "Roll number"), _query("email", "Email")
            ])},
            "/api/students/me": {"get": _op("Students", "Own profile")},
            "/api/students/me/profile": {"put": _op(
                "Students", "Complete or update the own profile", body=_body("Profile"))},
            "/api/students/bulk": {"post": _op("Students", "Import students from CSV/Excel")},
            "/api/outpasses/": {
                "get": _op("Outpasses", "List outpasses", params=[
                    _query("status", "Outpass status"), _query("hostel", "Hostel"),
                    _query("date", "YYYY-MM-DD"), _query("roll_no", "Roll number")
                ]),
                "post": _op("Outpasses", "Request an outpass", body=_body("OutpassRequest"))
            },
            "/api/outpasses/{outpass_id}": {"get": _op("Outpasses", "Get an outpass", params=[OUTPASS_ID])},
            "/api/outpasses/{outpass_id}/status": {"put": _op(
                "Outpasses", "Move an outpass to a new status", params=[OUTPASS_ID],
                body=_body(properties={
                    "status": {"type": "string", "enum": OUTPASS_STATUSES},
                    "reject_reason": {"type": "string"},
                    "exit_time": {"type": "string", "format": "date-time"},
                    "exit_gate": {"type": "string"},
                    "return_time": {"type": "string", "format": "date-time"},
                    "return_gate": {"type": "string"}
                }, required=["status"]))},
            "/api/outpasses/{outpass_id}/approve": {"post": _op(
                "Outpasses", "Approve a pending outpass", params=[OUTPASS_ID])},
            "/api/outpasses/{outpass_id}/reject": {"post": _op(
                "Outpasses", "Reject a pending outpass", params=[OUTPASS_ID],
                body=_body(properties={"reject_reason": {"type": "string"}}, required=["reject_reason"]))},
            "/api/outpasses/{outpass_id}/cancel": {"post": _op(
                "Outpasses", "Cancel the own outpass", params=[OUTPASS_ID])},
            "/api/gate/scan": {"get": _op("Gate", "Find the outpass for a barcode or roll number", params=[
                _query("token", "Scanned barcode token or roll number")
            ])},
            "/api/gate/exit": {"post": _op(
                "Gate", "Record a student leaving campus",
                body=_body(properties={"outpass_id": {"type": "string"}, "gate": {"type": "string"}},
                           required=["outpass_id"]))},
            "/api/gate/return": {"post": _op(
                "Gate", "Record a student returning",
                body=_body(properties={"outpass_id": {"type": "string"}, "gate": {"type": "string"}},
                           required=["outpass_id"]))},
            "/api/gate/logs": {"get": _op("Gate", "Gate log", params=[
                _query("outpass_id", "Outpass id"), _query("student_id", "Student id", "integer"),
                _query("action", "exit or return"), _query("gate", "Gate name")
            ])},
            "/api/notifications/": {"get": _op("Notifications", "Notification feed", params=[
                _query("recipient_id", "Roll number or staff id"), _query("type", "parent, admin or student"),
                _query("types", "Comma separated recipient types"), _query("outpass_id", "Outpass id"),
                _query("limit", "Maximum entries", "integer")
            ])},
            "/api/feedback/": {
                "get": _op("Feedback", "List feedback", params=[
                    _query("outpass_id", "Outpass id"), _query("student_id", "Student id", "integer")
                ]),
                "post": _op("Feedback", "Give feedback on a rejected outpass", body=_body(properties={
                    "outpass_id": {"type": "string"}, "feedback_text": {"type": "string"}
                }, required=["outpass_id", "feedback_text"]))
            }
        }
    }

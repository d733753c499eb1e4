"""Request models validated at the service boundary."""

from counsel.application.dtos.case_requests import (
    AddDocumentRequest,
    AddNoteRequest,
    AssignLawyerRequest,
    CloseCaseRequest,
    CreateCaseRequest,
    DeclineCaseRequest,
    ReassignLawyerRequest,
    SetLeadAttorneyRequest,
    UnassignLawyerRequest,
    UpdateCaseRequest,
)
from counsel.application.dtos.staff_requests import (
    DemoteStaffRequest,
    FireStaffRequest,
    HireStaffRequest,
    PromoteStaffRequest,
)
from counsel.application.dtos.validation import parse_request, validation_message

__all__: list[str] = [
    "AddDocumentRequest",
    "AddNoteRequest",
    "AssignLawyerRequest",
    "CloseCaseRequest",
    "CreateCaseRequest",
    "DeclineCaseRequest",
    "DemoteStaffRequest",
    "FireStaffRequest",
    "HireStaffRequest",
    "PromoteStaffRequest",
    "ReassignLawyerRequest",
    "SetLeadAttorneyRequest",
    "UnassignLawyerRequest",
    "UpdateCaseRequest",
    "parse_request",
    "validation_message",
]

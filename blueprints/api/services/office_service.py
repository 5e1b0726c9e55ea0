"""
Business logic for the office booking operation endpoint.
"""

from models.office import (
    create_admin_block,
    create_office_booking,
    delete_office_booking,
    list_by_office,
    list_by_user,
)
from utils.messages import get_message
from blueprints.api.requests import (
    EmptyRequest,
    OfficeBookingRef,
    OfficeSlotRequest,
    OfficeWindowRequest,
)


def handle_list_by_office(principal, req: OfficeWindowRequest) -> tuple:
    return list_by_office(principal, req.office_id, req.start_time, req.end_time), None


def handle_list_by_user(principal, req: EmptyRequest) -> tuple:
    return list_by_user(principal), None


def handle_create(principal, req: OfficeSlotRequest) -> tuple:
    booking = create_office_booking(principal, req.office_id, req.start_time, req.end_time)
    return booking, get_message('office_booking_created')


def handle_create_admin_block(principal, req: OfficeSlotRequest) -> tuple:
    booking = create_admin_block(principal, req.office_id, req.start_time, req.end_time)
    return booking, get_message('office_block_created')


def handle_delete(principal, req: OfficeBookingRef) -> tuple:
    delete_office_booking(principal, req.booking_id)
    return {'booking_id': req.booking_id}, get_message('office_booking_deleted')


OFFICE_BOOKING_OPERATIONS = {
    'list_by_office': (OfficeWindowRequest, handle_list_by_office),
    'list_by_user': (EmptyRequest, handle_list_by_user),
    'create': (OfficeSlotRequest, handle_create),
    'create_admin_block': (OfficeSlotRequest, handle_create_admin_block),
    'delete': (OfficeBookingRef, handle_delete),
}

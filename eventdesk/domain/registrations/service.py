"""Registration service - Business logic for registrations, imports and stats"""

import logging
import math
from datetime import datetime
from typing import Any, Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...models import Event, Payment, Registration, RegistrationAddon, TicketType, generate_id
from ...services.csv_export import csv_response
from ...services.document_renderer import render_receipt
from ...services.numbering import generate_payment_number, next_registration_number
from ...services.pricing import calculate_order, is_discount_applicable, ticket_on_sale
from ...shared.validators import clamp_pagination, is_valid_email, model_updates
from .repository import RegistrationRepository
from .schemas import ManualVerificationRequest, RegistrationCreate, RegistrationImportRequest, RegistrationUpdate

logger = logging.getLogger(__name__)

MAX_NUMBER_ATTEMPTS = 10
TRUTHY = ("1", "true", "yes", "y")

EXPORT_HEADERS = [
    "Registration Number",
    "Name",
    "Email",
    "Phone",
    "Institution",
    "Designation",
    "City",
    "State",
    "Country",
    "Ticket",
    "Quantity",
    "Total Amount",
    "Status",
    "Payment Status",
    "Registered At",
]


async def notify_registration(registration_id: str, trigger_type: str, send_confirmation: bool = True) -> None:
    """
    BackgroundTasks entry point after a registration is created or paid:
    confirmation email, auto-send templates and the organiser webhook.
    Uses its own session because the request's session is closed by now.
    """
    from ...database import SessionLocal
    from ...email_service import EmailError, send_registration_confirmation
    from ...services.webhook_service import post_webhook
    from ..communications.repository import CommunicationsRepository
    from ..communications.service import registration_trigger_context, trigger_auto_send

    db = SessionLocal()
    try:
        registration = db.query(Registration).filter(Registration.id == registration_id).first()
        if registration is None:
            return
        event = registration.event
        comm_settings = CommunicationsRepository.get_settings(db, event.id)

        if send_confirmation and registration.status == "confirmed":
            try:
                await send_registration_confirmation(registration, event, comm_settings)
            except EmailError as e:
                logger.warning(f"⚠️ Confirmation email for {registration.registration_number} not sent: {e}")

        await trigger_auto_send(db, trigger_type, registration_trigger_context(registration, event))

        if trigger_type == "on_registration" and event.settings is not None and event.settings.webhook_url:
            await post_webhook(
                event.settings.webhook_url,
                "registration.created",
                {
                    "event_id": event.id,
                    "registration_id": registration.id,
                    "registration_number": registration.registration_number,
                    "status": registration.status,
                    "payment_status": registration.payment_status,
                    "total_amount": registration.total_amount,
                },
            )
    except Exception as e:
        db.rollback()
        logger.error(f"❌ Post-registration notifications failed for {registration_id}: {e}")
    finally:
        db.close()


class RegistrationService:
    """Service layer for registration business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = RegistrationRepository()

    def get_event(self, event_id: str) -> Event:
        event = self.repo.get_event(self.db, event_id)
        if not event:
            raise HTTPException(status_code=404, detail="Event not found")
        return event

    def get_registration(self, registration_id: str) -> Registration:
        registration = self.repo.get_registration(self.db, registration_id)
        if not registration:
            raise HTTPException(status_code=404, detail="Registration not found")
        return registration

    def new_registration_number(self, event: Event) -> str:
        """Custom sequences are unique by construction; random REG numbers are retried on collision"""
        for _ in range(MAX_NUMBER_ATTEMPTS):
            number = next_registration_number(event.settings)
            if not self.repo.registration_number_exists(self.db, number):
                return number
        raise HTTPException(status_code=409, detail="Could not allocate a registration number, please retry")

    # ------------------------------------------------------------------
    # Public registration
    # ------------------------------------------------------------------

    def create_registration(self, event_id: str, data: RegistrationCreate) -> Registration:
        event = self.get_event(event_id)
        if not event.registration_open:
            raise HTTPException(status_code=403, detail="Registration is closed for this event")

        ticket = self.repo.get_ticket(self.db, event_id, data.ticket_type_id)
        if not ticket:
            raise HTTPException(status_code=404, detail="Ticket type not found")
        if ticket.status != "active" or not ticket_on_sale(ticket, datetime.utcnow()):
            raise HTTPException(status_code=400, detail="This ticket type is not available")
        if data.quantity < ticket.min_per_order or data.quantity > ticket.max_per_order:
            raise HTTPException(
                status_code=400,
                detail=f"Quantity must be between {ticket.min_per_order} and {ticket.max_per_order}",
            )
        if ticket.quantity_total is not None and ticket.quantity_sold + data.quantity > ticket.quantity_total:
            raise HTTPException(status_code=400, detail="Not enough tickets available")

        discount_code = None
        if data.discount_code:
            discount_code = self.repo.get_discount_code(self.db, event_id, data.discount_code)
            if not is_discount_applicable(discount_code, ticket.id):
                raise HTTPException(status_code=400, detail="Invalid or expired discount code")

        addon_rows = []
        addons_amount = 0.0
        for item in data.addons:
            addon = self.repo.get_active_addon(self.db, event_id, item.addon_id)
            if not addon:
                raise HTTPException(status_code=400, detail="Selected addon is not available")
            if item.quantity > addon.max_quantity:
                raise HTTPException(
                    status_code=400, detail=f"At most {addon.max_quantity} of {addon.name} can be ordered"
                )
            line_total = round(addon.price * item.quantity, 2)
            addons_amount += line_total
            addon_rows.append(
                RegistrationAddon(
                    addon_id=addon.id, quantity=item.quantity, unit_price=addon.price, total_price=line_total
                )
            )

        totals = calculate_order(ticket.price, data.quantity, ticket.tax_percentage, discount_code, addons_amount)
        is_free = totals.total_amount <= 0
        if not is_free and data.payment_method == "free":
            raise HTTPException(status_code=400, detail="A paid ticket cannot use the free payment method")

        requires_approval = ticket.requires_approval or bool(event.settings and event.settings.require_approval)
        now = datetime.utcnow()
        if is_free:
            status = "pending" if requires_approval else "confirmed"
            payment_status = "free"
        else:
            status, payment_status = "pending", "pending"

        payment = Payment(
            id=generate_id(),
            payment_number=generate_payment_number(),
            event_id=event_id,
            amount=totals.total_amount,
            currency=ticket.currency,
            payment_method="free" if is_free else data.payment_method,
            status="completed" if is_free else "pending",
            completed_at=now if is_free else None,
        )

        registration = Registration(
            registration_number=self.new_registration_number(event),
            event_id=event_id,
            ticket_type_id=ticket.id,
            attendee_name=data.attendee_name.strip(),
            attendee_email=data.attendee_email,
            attendee_phone=data.attendee_phone,
            attendee_institution=data.attendee_institution,
            attendee_designation=data.attendee_designation,
            attendee_city=data.attendee_city,
            attendee_state=data.attendee_state,
            attendee_country=data.attendee_country,
            quantity=data.quantity,
            unit_price=ticket.price,
            tax_amount=totals.tax_amount,
            discount_amount=totals.discount_amount,
            total_amount=totals.total_amount,
            discount_code_id=discount_code.id if discount_code else None,
            status=status,
            payment_status=payment_status,
            payment_id=payment.id,
            custom_fields=data.custom_fields or {},
            confirmed_at=now if status == "confirmed" else None,
        )
        registration.addons = addon_rows
        self.db.add(registration)
        self.db.flush()

        payment.registration_id = registration.id
        self.db.add(payment)

        if discount_code is not None:
            discount_code.current_uses = (discount_code.current_uses or 0) + 1
        if status == "confirmed":
            ticket.quantity_sold = (ticket.quantity_sold or 0) + data.quantity

        self.db.commit()
        self.db.refresh(registration)

        logger.info(
            f"✅ Registration {registration.registration_number} created for event {event_id} "
            f"({status}, {payment_status}, total {totals.total_amount})"
        )
        return registration

    # ------------------------------------------------------------------
    # Admin operations
    # ------------------------------------------------------------------

    def list_registrations(
        self,
        event_id: str,
        status: Optional[str],
        ticket_type_id: Optional[str],
        payment_status: Optional[str],
        search: Optional[str],
        page: Optional[int],
        limit: Optional[int],
    ) -> dict:
        page, limit = clamp_pagination(page, limit)
        query = self.repo.filtered_query(self.db, event_id, status, ticket_type_id, payment_status, search)
        total = query.count()
        rows = query.order_by(Registration.created_at.desc()).offset((page - 1) * limit).limit(limit).all()
        return {
            "data": rows,
            "total": total,
            "page": page,
            "limit": limit,
            "total_pages": math.ceil(total / limit) if total else 0,
        }

    def update_registration(self, registration_id: str, data: RegistrationUpdate) -> Registration:
        registration = self.get_registration(registration_id)
        for key, value in model_updates(data, registration).items():
            setattr(registration, key, value)
        self.db.commit()
        self.db.refresh(registration)
        return registration

    def confirm_registration(self, registration_id: str) -> Registration:
        """Mark a registration as paid and confirmed"""
        registration = self.get_registration(registration_id)
        if registration.status == "confirmed":
            raise HTTPException(status_code=400, detail="Registration is already confirmed")
        if registration.status == "cancelled":
            raise HTTPException(status_code=400, detail="Cancelled registrations cannot be confirmed")

        now = datetime.utcnow()
        registration.status = "confirmed"
        registration.confirmed_at = now
        if registration.payment_status != "free":
            registration.payment_status = "completed"

        payment = self.repo.get_payment(self.db, registration)
        if payment is not None:
            payment.status = "completed"
            payment.completed_at = now

        if registration.ticket_type is not None:
            registration.ticket_type.quantity_sold = (registration.ticket_type.quantity_sold or 0) + registration.quantity

        self.db.commit()
        self.db.refresh(registration)
        logger.info(f"✅ Registration {registration.registration_number} confirmed")
        return registration

    def get_payment(self, payment_id: str) -> Payment:
        payment = self.repo.get_payment_by_id(self.db, payment_id)
        if not payment:
            raise HTTPException(status_code=404, detail="Payment not found")
        return payment

    def verify_manual_payment(self, payment_id: str, data: ManualVerificationRequest, member_email: str) -> dict:
        """
        Mark a payment completed on staff say-so (bank transfer, cash, or a
        gateway capture the webhook missed) and confirm its registrations.
        """
        payment = self.get_payment(payment_id)
        if payment.status == "completed":
            return {
                "status": "already_completed",
                "verified": True,
                "message": "This payment is already marked as completed",
                "payment_id": payment.id,
                "reference": payment.reference,
                "completed_at": payment.completed_at,
            }
        if payment.status == "refunded":
            raise HTTPException(status_code=400, detail="Refunded payments cannot be verified")

        reference = (data.reference or "").strip() or payment.reference
        if not reference:
            return {
                "status": "no_reference",
                "verified": False,
                "message": "No payment reference found. Please enter the transaction ID or UTR.",
                "payment_id": payment.id,
            }

        now = datetime.utcnow()
        entry = f"[Manual Verification] Verified at {now.isoformat()} by {member_email}."
        if data.note:
            entry = f"{entry} {data.note.strip()}"

        payment.status = "completed"
        payment.reference = reference
        payment.completed_at = now
        payment.notes = f"{payment.notes}\n{entry}" if payment.notes else entry

        confirmed = []
        for registration in self.repo.payment_registrations(self.db, payment):
            if registration.payment_status != "free":
                registration.payment_status = "completed"
            if registration.status == "pending":
                registration.status = "confirmed"
                registration.confirmed_at = now
                if registration.ticket_type is not None:
                    ticket = registration.ticket_type
                    ticket.quantity_sold = (ticket.quantity_sold or 0) + registration.quantity
                confirmed.append(registration.id)

        self.db.commit()
        logger.info(
            f"✅ Payment {payment.payment_number} verified manually by {member_email}, "
            f"{len(confirmed)} registration(s) confirmed"
        )

        result = {
            "status": "completed",
            "verified": True,
            "message": "Payment has been marked as completed.",
            "payment_id": payment.id,
            "reference": reference,
            "completed_at": now,
            "registrations_confirmed": confirmed,
        }
        if data.amount_received is not None and abs(data.amount_received - payment.amount) > 1:
            result["amount_mismatch"] = True
            result["warning"] = (
                f"Amount mismatch: received {data.amount_received:g}, our record has {payment.amount:g}"
            )
        return result

    def receipt_pdf(self, registration_id: str) -> tuple[Registration, bytes]:
        registration = self.get_registration(registration_id)
        payment = self.repo.get_payment(self.db, registration)
        return registration, render_receipt(registration, registration.event, payment)

    def cancel_registration(self, registration_id: str) -> Registration:
        registration = self.get_registration(registration_id)
        if registration.status == "cancelled":
            raise HTTPException(status_code=400, detail="Registration is already cancelled")

        if registration.status == "confirmed" and registration.ticket_type is not None:
            ticket = registration.ticket_type
            ticket.quantity_sold = max(0, (ticket.quantity_sold or 0) - registration.quantity)

        registration.status = "cancelled"
        registration.cancelled_at = datetime.utcnow()
        self.db.commit()
        self.db.refresh(registration)
        logger.info(f"🚫 Registration {registration.registration_number} cancelled")
        return registration

    # ------------------------------------------------------------------
    # Bulk import
    # ------------------------------------------------------------------

    @staticmethod
    def _cell(row: dict[str, Any], key: str) -> Optional[str]:
        value = row.get(key)
        if value is None:
            return None
        value = str(value).strip()
        return value or None

    def import_registrations(self, event_id: str, data: RegistrationImportRequest) -> dict:
        """
        Validate and create registrations row by row.
        Row numbers in messages are spreadsheet rows: the header is row 1.
        """
        event = self.get_event(event_id)
        tickets = self.repo.list_tickets(self.db, event_id)
        tickets_by_name = {t.name.strip().lower(): t for t in tickets}

        default_ticket: Optional[TicketType] = None
        if data.ticket_type_id:
            default_ticket = next((t for t in tickets if t.id == data.ticket_type_id), None)
            if default_ticket is None:
                raise HTTPException(status_code=404, detail="Ticket type not found")
        elif tickets:
            default_ticket = tickets[0]

        seen_emails = self.repo.event_emails(self.db, event_id)
        consumed: dict[str, int] = {}
        result = {"success": 0, "failed": 0, "skipped": 0, "errors": [], "created": [], "notify_ids": []}

        for index, row in enumerate(data.rows):
            row_number = index + 2
            name = self._cell(row, "name")
            email = self._cell(row, "email")

            if not name or not email:
                result["failed"] += 1
                result["errors"].append(f"Row {row_number}: Name and email are required")
                continue
            if not is_valid_email(email):
                result["failed"] += 1
                result["errors"].append(f"Row {row_number}: Invalid email '{email}'")
                continue

            email = email.lower()
            if email in seen_emails:
                result["skipped"] += 1
                continue

            ticket_name = self._cell(row, "ticket")
            ticket = tickets_by_name.get(ticket_name.lower()) if ticket_name else None
            ticket = ticket or default_ticket
            if ticket is None:
                result["failed"] += 1
                result["errors"].append(f"Row {row_number}: No ticket type available")
                continue

            used = consumed.get(ticket.id, 0)
            if ticket.quantity_total is not None and (ticket.quantity_sold or 0) + used >= ticket.quantity_total:
                result["failed"] += 1
                result["errors"].append(f"Row {row_number}: Ticket '{ticket.name}' is sold out")
                continue

            totals = calculate_order(ticket.price, 1, ticket.tax_percentage)
            if totals.total_amount <= 0:
                payment_status = "free"
            elif data.status == "confirmed":
                payment_status = "completed"
            else:
                payment_status = "pending"

            custom_fields = {
                key[2:].strip(): value
                for key, value in row.items()
                if isinstance(key, str) and key.startswith("q:") and value not in (None, "")
            }

            registration = Registration(
                registration_number=self.new_registration_number(event),
                event_id=event_id,
                ticket_type_id=ticket.id,
                attendee_name=name,
                attendee_email=email,
                attendee_phone=self._cell(row, "phone"),
                attendee_designation=self._cell(row, "designation"),
                attendee_institution=self._cell(row, "institution"),
                attendee_city=self._cell(row, "city"),
                attendee_state=self._cell(row, "state"),
                attendee_country=self._cell(row, "country"),
                quantity=1,
                unit_price=ticket.price,
                tax_amount=totals.tax_amount,
                total_amount=totals.total_amount,
                status=data.status,
                payment_status=payment_status,
                custom_fields=custom_fields,
                confirmed_at=datetime.utcnow() if data.status == "confirmed" else None,
            )
            self.db.add(registration)
            self.db.flush()

            # Confirmed rows are counted in quantity_sold, pending ones only here
            if data.status == "confirmed":
                ticket.quantity_sold = (ticket.quantity_sold or 0) + 1
            else:
                consumed[ticket.id] = used + 1
            seen_emails.add(email)

            result["success"] += 1
            result["created"].append(
                {
                    "row": row_number,
                    "registration_id": registration.id,
                    "registration_number": registration.registration_number,
                    "name": name,
                    "email": email,
                }
            )
            if str(row.get("notify", "")).strip().lower() in TRUTHY or row.get("notify") is True:
                result["notify_ids"].append(registration.id)

        self.db.commit()
        logger.info(
            f"📥 Import for event {event_id}: {result['success']} created, "
            f"{result['failed']} failed, {result['skipped']} skipped"
        )
        return result

    # ------------------------------------------------------------------
    # Reporting
    # ------------------------------------------------------------------

    def export_registrations_csv(
        self,
        event_id: str,
        status: Optional[str],
        ticket_type_id: Optional[str],
        payment_status: Optional[str],
        search: Optional[str],
    ):
        event = self.get_event(event_id)
        query = self.repo.filtered_query(self.db, event_id, status, ticket_type_id, payment_status, search)
        rows = [
            [
                r.registration_number,
                r.attendee_name,
                r.attendee_email,
                r.attendee_phone,
                r.attendee_institution,
                r.attendee_designation,
                r.attendee_city,
                r.attendee_state,
                r.attendee_country,
                r.ticket_type.name if r.ticket_type else "",
                r.quantity,
                r.total_amount,
                r.status,
                r.payment_status,
                r.created_at,
            ]
            for r in query.order_by(Registration.created_at).all()
        ]
        return csv_response(f"registrations_{event.slug}", EXPORT_HEADERS, rows)

    def get_stats(self, event_id: str) -> dict:
        self.get_event(event_id)
        by_status = self.repo.count_by(self.db, event_id, Registration.status)
        tickets = [
            {
                "ticket_type_id": t.id,
                "name": t.name,
                "sold": t.quantity_sold,
                "total": t.quantity_total,
            }
            for t in self.repo.list_tickets(self.db, event_id)
        ]
        return {
            "total": sum(by_status.values()),
            "byStatus": by_status,
            "byPaymentStatus": self.repo.count_by(self.db, event_id, Registration.payment_status),
            "totalRevenue": self.repo.completed_revenue(self.db, event_id),
            "tickets": tickets,
        }

"""Event service - Business logic for event operations"""

import logging
from typing import Optional

from fastapi import HTTPException
from fastapi.responses import Response
from sqlalchemy.orm import Session

from ...config import FRONTEND_URL
from ...models import Addon, Event, EventSettings, TeamMember, TicketType
from ...services.csv_export import csv_response
from ...services.ics_generator import event_calendar_entry, generate_ics
from ...shared.validators import model_updates, slugify
from .repository import EventRepository
from .schemas import EventCreate, EventSettingsUpdate, EventUpdate

logger = logging.getLogger(__name__)

EXPORT_HEADERS = [
    "Name",
    "Short Name",
    "Slug",
    "Type",
    "Status",
    "Start Date",
    "End Date",
    "Venue",
    "City",
    "State",
    "Country",
    "Registration Open",
    "Max Attendees",
    "Contact Email",
]


class EventService:
    """Service layer for event business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = EventRepository()

    def list_events(self, member: TeamMember, status: Optional[str], search: Optional[str]) -> list[Event]:
        return self.repo.list_events(self.db, member, status, search)

    def get_event(self, event_id: str) -> Event:
        event = self.repo.get_event(self.db, event_id)
        if not event:
            raise HTTPException(status_code=404, detail="Event not found")
        return event

    def unique_slug(self, name: str) -> str:
        base = slugify(name)
        slug, counter = base, 1
        while self.repo.slug_exists(self.db, slug):
            slug = f"{base}-{counter}"
            counter += 1
        return slug

    @staticmethod
    def check_dates(start_date, end_date) -> None:
        if start_date and end_date and end_date < start_date:
            raise HTTPException(status_code=400, detail="End date cannot be before start date")

    def create_event(self, data: EventCreate, member: TeamMember) -> Event:
        self.check_dates(data.start_date, data.end_date)

        event = Event(**data.model_dump(), slug=self.unique_slug(data.name), created_by=member.id)
        event.settings = EventSettings()
        self.db.add(event)
        self.db.commit()
        self.db.refresh(event)

        logger.info(f"✅ Event created: {event.name} ({event.slug}) by {member.email}")
        return event

    def update_event(self, event_id: str, data: EventUpdate) -> Event:
        event = self.get_event(event_id)
        updates = model_updates(data, event)
        self.check_dates(updates.get("start_date", event.start_date), updates.get("end_date", event.end_date))

        for key, value in updates.items():
            setattr(event, key, value)
        self.db.commit()
        self.db.refresh(event)
        return event

    def delete_event(self, event_id: str, member: TeamMember) -> dict:
        event = self.get_event(event_id)
        name = event.name
        self.repo.delete_event_tree(self.db, event)
        self.db.commit()
        logger.info(f"🗑️ Event deleted: {name} ({event_id}) by {member.email}")
        return {"message": "Event deleted"}

    def duplicate_event(self, event_id: str, member: TeamMember) -> Event:
        """Copy the event, its settings, ticket types and addons; registrations stay behind"""
        source = self.get_event(event_id)
        name = f"{source.name} (Copy)"

        copy = Event(
            name=name,
            short_name=source.short_name,
            slug=self.unique_slug(name),
            description=source.description,
            event_type=source.event_type,
            status="draft",
            start_date=source.start_date,
            end_date=source.end_date,
            venue_name=source.venue_name,
            city=source.city,
            state=source.state,
            country=source.country,
            timezone=source.timezone,
            registration_open=source.registration_open,
            max_attendees=source.max_attendees,
            contact_email=source.contact_email,
            logo_url=source.logo_url,
            created_by=member.id,
        )

        settings = source.settings
        copy.settings = EventSettings(
            customize_registration_id=settings.customize_registration_id if settings else False,
            registration_prefix=settings.registration_prefix if settings else None,
            registration_start_number=settings.registration_start_number if settings else 1,
            registration_suffix=settings.registration_suffix if settings else None,
            current_registration_number=0,
            allow_multiple_ticket_types=settings.allow_multiple_ticket_types if settings else False,
            require_approval=settings.require_approval if settings else False,
            webhook_url=settings.webhook_url if settings else None,
        )

        for ticket in source.ticket_types:
            copy.ticket_types.append(
                TicketType(
                    name=ticket.name,
                    description=ticket.description,
                    price=ticket.price,
                    currency=ticket.currency,
                    quantity_total=ticket.quantity_total,
                    quantity_sold=0,
                    min_per_order=ticket.min_per_order,
                    max_per_order=ticket.max_per_order,
                    sale_start_date=ticket.sale_start_date,
                    sale_end_date=ticket.sale_end_date,
                    status=ticket.status,
                    is_hidden=ticket.is_hidden,
                    requires_approval=ticket.requires_approval,
                    tax_percentage=ticket.tax_percentage,
                    sort_order=ticket.sort_order,
                )
            )

        for addon in source.addons:
            copy.addons.append(
                Addon(
                    name=addon.name,
                    description=addon.description,
                    price=addon.price,
                    max_quantity=addon.max_quantity,
                    is_active=addon.is_active,
                    sort_order=addon.sort_order,
                )
            )

        self.db.add(copy)
        self.db.commit()
        self.db.refresh(copy)
        logger.info(f"📋 Event {source.id} duplicated as {copy.id}")
        return copy

    def get_settings(self, event_id: str) -> EventSettings:
        event = self.get_event(event_id)
        settings = self.repo.get_or_create_settings(self.db, event)
        self.db.commit()
        return settings

    def update_settings(self, event_id: str, data: EventSettingsUpdate) -> EventSettings:
        event = self.get_event(event_id)
        settings = self.repo.get_or_create_settings(self.db, event)
        for key, value in model_updates(data, settings).items():
            setattr(settings, key, value)
        self.db.commit()
        self.db.refresh(settings)
        return settings

    def calendar_file(self, event_id: str) -> Response:
        event = self.get_event(event_id)
        url = f"{FRONTEND_URL.rstrip('/')}/events/{event.slug}"
        content = generate_ics([event_calendar_entry(event, url)], calendar_name=event.name)
        return Response(
            content=content,
            media_type="text/calendar",
            headers={"Content-Disposition": f"attachment; filename={event.slug}.ics"},
        )

    def export_events_csv(self, member: TeamMember, status: Optional[str], search: Optional[str]):
        events = self.repo.list_events(self.db, member, status, search)
        rows = [
            [
                e.name,
                e.short_name,
                e.slug,
                e.event_type,
                e.status,
                e.start_date,
                e.end_date,
                e.venue_name,
                e.city,
                e.state,
                e.country,
                e.registration_open,
                e.max_attendees,
                e.contact_email,
            ]
            for e in events
        ]
        return csv_response("events", EXPORT_HEADERS, rows)

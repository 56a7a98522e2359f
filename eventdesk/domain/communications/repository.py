"""Communications repository - Database operations for settings, templates and logs"""

from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from ...models import Registration
from ...models_communications import CommunicationSettings, MessageLog, MessageTemplate, default_channels


class CommunicationsRepository:
    """Repository for communications database operations"""

    @staticmethod
    def get_settings(db: Session, event_id: str) -> Optional[CommunicationSettings]:
        return db.query(CommunicationSettings).filter(CommunicationSettings.event_id == event_id).first()

    @staticmethod
    def get_or_create_settings(db: Session, event_id: str) -> CommunicationSettings:
        settings = CommunicationsRepository.get_settings(db, event_id)
        if settings is None:
            settings = CommunicationSettings(event_id=event_id, channels_enabled=default_channels())
            db.add(settings)
            db.flush()
        return settings

    @staticmethod
    def list_templates(db: Session, event_id: str) -> list[MessageTemplate]:
        return (
            db.query(MessageTemplate)
            .filter(MessageTemplate.event_id == event_id)
            .order_by(MessageTemplate.created_at.desc())
            .all()
        )

    @staticmethod
    def get_template(db: Session, event_id: str, template_id: str) -> Optional[MessageTemplate]:
        return (
            db.query(MessageTemplate)
            .filter(MessageTemplate.id == template_id, MessageTemplate.event_id == event_id)
            .first()
        )

    @staticmethod
    def template_names(db: Session, event_id: str) -> set[str]:
        rows = db.query(MessageTemplate.name).filter(MessageTemplate.event_id == event_id).all()
        return {name for (name,) in rows}

    @staticmethod
    def find_auto_send_templates(
        db: Session, event_id: str, trigger_type: str, trigger_value: Optional[int] = None
    ) -> list[MessageTemplate]:
        query = db.query(MessageTemplate).filter(
            MessageTemplate.event_id == event_id,
            MessageTemplate.auto_send.is_(True),
            MessageTemplate.trigger_type == trigger_type,
            MessageTemplate.is_active.is_(True),
        )
        if trigger_value is not None:
            query = query.filter(MessageTemplate.trigger_value == trigger_value)
        return query.all()

    @staticmethod
    def get_event_registrations(db: Session, event_id: str, registration_ids: list[str]) -> list[Registration]:
        return (
            db.query(Registration)
            .filter(Registration.event_id == event_id, Registration.id.in_(registration_ids))
            .all()
        )

    @staticmethod
    def add_log(
        db: Session,
        event_id: str,
        channel: str,
        recipient: str,
        status: str,
        registration_id: Optional[str] = None,
        template_id: Optional[str] = None,
        recipient_name: Optional[str] = None,
        subject: Optional[str] = None,
        message_body: Optional[str] = None,
        provider: Optional[str] = None,
        provider_message_id: Optional[str] = None,
        error_message: Optional[str] = None,
    ) -> MessageLog:
        log = MessageLog(
            event_id=event_id,
            registration_id=registration_id,
            template_id=template_id,
            channel=channel,
            recipient=recipient,
            recipient_name=recipient_name,
            subject=subject,
            message_body=message_body,
            status=status,
            provider=provider,
            provider_message_id=provider_message_id,
            error_message=error_message,
            sent_at=datetime.utcnow() if status == "sent" else None,
        )
        db.add(log)
        return log

    @staticmethod
    def list_logs(
        db: Session,
        event_id: str,
        channel: Optional[str],
        status: Optional[str],
        offset: int,
        limit: int,
    ) -> tuple[list[MessageLog], int]:
        query = db.query(MessageLog).filter(MessageLog.event_id == event_id)
        if channel:
            query = query.filter(MessageLog.channel == channel)
        if status:
            query = query.filter(MessageLog.status == status)
        total = query.count()
        rows = query.order_by(MessageLog.created_at.desc()).offset(offset).limit(limit).all()
        return rows, total

"""
MJML Email Templates
All email templates using MJML for responsive, cross-client compatibility
"""

from typing import Optional

from .security_utils import escape_html

# App theme colors - Indigo/Slate color scheme
THEME = {
    "primary": "#4f46e5",
    "primary_dark": "#4338ca",
    "primary_light": "#e0e7ff",
    "background": "#f8fafc",
    "card_bg": "#ffffff",
    "text_primary": "#0f172a",
    "text_secondary": "#334155",
    "text_muted": "#64748b",
    "border": "#e2e8f0",
    "success": "#16a34a",
    "warning": "#f59e0b",
    "danger": "#ef4444",
}

BRAND_NAME = "EventDesk"


def get_base_template(
    title: str,
    preview_text: str,
    content_sections: str,
    cta_url: Optional[str] = None,
    cta_label: Optional[str] = None,
    footer_text: Optional[str] = None,
) -> str:
    """Base MJML template wrapper for all emails"""

    cta_section = ""
    if cta_url and cta_label:
        cta_section = f"""
        <mj-section background-color="#ffffff" padding="0 40px 40px 40px">
          <mj-column>
            <mj-button
              href="{cta_url}"
              background-color="{THEME['primary']}"
              color="#ffffff"
              font-weight="600"
              border-radius="8px"
              padding="0"
              inner-padding="16px 36px"
              font-size="16px">
              {cta_label}
            </mj-button>
          </mj-column>
        </mj-section>
        """

    footer_notice = ""
    if footer_text:
        footer_notice = f"""
        <mj-text align="center" font-size="12px" color="#94a3b8" padding="12px 0 0 0">
          {footer_text}
        </mj-text>
        """

    return f"""
    <mjml>
      <mj-head>
        <mj-title>{title}</mj-title>
        <mj-preview>{preview_text}</mj-preview>
        <mj-attributes>
          <mj-all font-family="-apple-system, BlinkMacSystemFont, 'Segoe UI', 'Helvetica Neue', Arial, sans-serif" />
          <mj-text font-size="16px" line-height="1.6" color="{THEME['text_secondary']}" />
        </mj-attributes>
      </mj-head>
      <mj-body background-color="{THEME['background']}">
        <mj-section background-color="{THEME['primary']}" padding="24px 20px">
          <mj-column>
            <mj-text align="center" font-size="20px" font-weight="700" color="#ffffff" padding="0">
              {BRAND_NAME}
            </mj-text>
          </mj-column>
        </mj-section>

        <!-- Main Content -->
        <mj-section background-color="#ffffff" padding="40px 40px 24px 40px">
          <mj-column>
            <mj-text font-size="24px" font-weight="600" color="{THEME['text_primary']}" line-height="1.3" padding="0 0 16px 0">
              {title}
            </mj-text>

            {content_sections}
          </mj-column>
        </mj-section>

        {cta_section}

        <!-- Footer -->
        <mj-section padding="32px 20px">
          <mj-column>
            <mj-text align="center" font-size="13px" color="#94a3b8" padding="0">
              Sent with {BRAND_NAME}
            </mj-text>
            {footer_notice}
          </mj-column>
        </mj-section>
      </mj-body>
    </mjml>
    """


def _details_table(rows: list[tuple[str, Optional[str]]]) -> str:
    """Two-column label/value table; rows with empty values are dropped"""
    cells = "".join(
        f"""
        <tr>
          <td style="padding: 6px 0; color: {THEME['text_muted']}; width: 40%;">{escape_html(label)}</td>
          <td style="padding: 6px 0; color: {THEME['text_primary']}; font-weight: 600;">{escape_html(value)}</td>
        </tr>"""
        for label, value in rows
        if value
    )
    return f"""
    <mj-table padding="8px 0 24px 0" font-size="15px">
      {cells}
    </mj-table>
    """


def magic_link_template(name: Optional[str], login_url: str, expires_minutes: int) -> str:
    greeting = f"Hi {escape_html(name)}," if name else "Hi,"
    content = f"""
    <mj-text>{greeting}</mj-text>
    <mj-text>
      Use the button below to sign in to {BRAND_NAME}. The link expires in {expires_minutes} minutes
      and can only be used from this email.
    </mj-text>
    """
    return get_base_template(
        title="Sign in to EventDesk",
        preview_text="Your sign-in link",
        content_sections=content,
        cta_url=login_url,
        cta_label="Sign in",
        footer_text="If you didn't request this, you can ignore this email.",
    )


def registration_confirmation_template(
    attendee_name: str,
    event_name: str,
    registration_number: str,
    ticket_name: Optional[str],
    event_dates: Optional[str],
    venue: Optional[str],
    amount: Optional[str],
    verification_url: str,
) -> str:
    content = f"""
    <mj-text>Hi {escape_html(attendee_name)},</mj-text>
    <mj-text>
      Your registration for <strong>{escape_html(event_name)}</strong> is confirmed.
      Keep this email handy; the QR code on your badge links to the page below.
    </mj-text>
    {_details_table([
        ("Registration number", registration_number),
        ("Ticket", ticket_name),
        ("Dates", event_dates),
        ("Venue", venue),
        ("Amount", amount),
    ])}
    """
    return get_base_template(
        title="Registration confirmed",
        preview_text=f"You're registered for {escape_html(event_name)}",
        content_sections=content,
        cta_url=verification_url,
        cta_label="View registration",
    )


def faculty_invitation_template(
    faculty_name: str,
    event_name: str,
    sessions: list[dict],
    respond_url: str,
    is_reminder: bool = False,
) -> str:
    rows = "".join(
        f"""
        <tr>
          <td style="padding: 8px 0; border-bottom: 1px solid {THEME['border']};">
            <strong>{escape_html(s.get('session_name'))}</strong><br/>
            <span style="color: {THEME['text_muted']};">
              {escape_html(s.get('role', '').title())} · {escape_html(s.get('date'))} {escape_html(s.get('time'))}
              {(' · ' + escape_html(s['hall'])) if s.get('hall') else ''}
            </span>
          </td>
        </tr>"""
        for s in sessions
    )
    intro = (
        "This is a reminder that we are still waiting for your response to the invitation below."
        if is_reminder
        else f"We would be honoured to have you as faculty at <strong>{escape_html(event_name)}</strong>."
    )
    content = f"""
    <mj-text>Dear {escape_html(faculty_name)},</mj-text>
    <mj-text>{intro}</mj-text>
    <mj-text padding="8px 0 0 0" font-weight="600" color="{THEME['text_primary']}">Your sessions</mj-text>
    <mj-table padding="8px 0 24px 0" font-size="15px">{rows}</mj-table>
    <mj-text>Please confirm, decline, or request a change using the link below.</mj-text>
    """
    return get_base_template(
        title="Reminder: faculty invitation" if is_reminder else "Faculty invitation",
        preview_text=f"Invitation to {escape_html(event_name)}",
        content_sections=content,
        cta_url=respond_url,
        cta_label="Respond to invitation",
    )


def abstract_received_template(author_name: str, event_name: str, abstract_number: str, title: str) -> str:
    content = f"""
    <mj-text>Dear {escape_html(author_name)},</mj-text>
    <mj-text>
      We have received your abstract for <strong>{escape_html(event_name)}</strong>.
      You will hear from us once the review committee has reached a decision.
    </mj-text>
    {_details_table([("Abstract number", abstract_number), ("Title", title)])}
    """
    return get_base_template(
        title="Abstract received",
        preview_text=f"Abstract {abstract_number} received",
        content_sections=content,
    )


DECISION_COPY = {
    "accepted": ("Abstract accepted", "Congratulations! Your abstract has been accepted"),
    "redirected": ("Abstract accepted", "Your abstract has been accepted in a different category"),
    "rejected": ("Abstract decision", "Thank you for your submission. Unfortunately your abstract was not accepted"),
    "revision_requested": ("Revision requested", "The review committee has requested a revision of your abstract"),
}


def abstract_decision_template(
    author_name: str,
    event_name: str,
    abstract_number: str,
    title: str,
    decision: str,
    notes: Optional[str] = None,
    accepted_as: Optional[str] = None,
    category_name: Optional[str] = None,
) -> str:
    heading, lead = DECISION_COPY.get(decision, ("Abstract update", "There is an update on your abstract"))
    notes_section = ""
    if notes:
        notes_section = f"""
        <mj-text padding="0 0 8px 0" font-weight="600" color="{THEME['text_primary']}">Notes from the committee</mj-text>
        <mj-text padding="0 0 24px 0" color="{THEME['text_muted']}">{escape_html(notes)}</mj-text>
        """
    content = f"""
    <mj-text>Dear {escape_html(author_name)},</mj-text>
    <mj-text>{lead} for <strong>{escape_html(event_name)}</strong>.</mj-text>
    {_details_table([
        ("Abstract number", abstract_number),
        ("Title", title),
        ("Presentation", accepted_as.title() if accepted_as else None),
        ("Category", category_name),
    ])}
    {notes_section}
    """
    return get_base_template(title=heading, preview_text=f"{heading}: {abstract_number}", content_sections=content)


def certificate_ready_template(attendee_name: str, event_name: str, download_url: Optional[str] = None) -> str:
    content = f"""
    <mj-text>Dear {escape_html(attendee_name)},</mj-text>
    <mj-text>
      Thank you for attending <strong>{escape_html(event_name)}</strong>.
      Your certificate is attached to this email.
    </mj-text>
    """
    return get_base_template(
        title="Your certificate",
        preview_text=f"Certificate for {escape_html(event_name)}",
        content_sections=content,
        cta_url=download_url,
        cta_label="Download certificate" if download_url else None,
    )


def travel_itinerary_template(guest_name: str, event_name: str, legs: list[dict], hotel: Optional[dict]) -> str:
    sections = ""
    for leg in legs:
        sections += f"""
        <mj-text padding="8px 0 0 0" font-weight="600" color="{THEME['text_primary']}">{escape_html(leg['label'])}</mj-text>
        {_details_table([
            ("Carrier", leg.get("carrier")),
            ("Number", leg.get("number")),
            ("PNR", leg.get("pnr")),
            ("From", leg.get("from")),
            ("To", leg.get("to")),
            ("Departs", leg.get("departure")),
            ("Arrives", leg.get("arrival")),
        ])}
        """
    if hotel:
        sections += f"""
        <mj-text padding="8px 0 0 0" font-weight="600" color="{THEME['text_primary']}">Hotel</mj-text>
        {_details_table([
            ("Hotel", hotel.get("name")),
            ("Address", hotel.get("address")),
            ("Confirmation", hotel.get("confirmation")),
            ("Check-in", hotel.get("checkin")),
            ("Check-out", hotel.get("checkout")),
        ])}
        """
    content = f"""
    <mj-text>Dear {escape_html(guest_name)},</mj-text>
    <mj-text>
      Your travel for <strong>{escape_html(event_name)}</strong> has been arranged.
      The attached calendar file adds every booking to your calendar.
    </mj-text>
    {sections}
    """
    return get_base_template(
        title="Your travel itinerary",
        preview_text=f"Travel itinerary for {escape_html(event_name)}",
        content_sections=content,
    )


def form_submission_confirmation_template(name: Optional[str], form_name: str, success_message: Optional[str]) -> str:
    greeting = f"Hi {escape_html(name)}," if name else "Hi,"
    content = f"""
    <mj-text>{greeting}</mj-text>
    <mj-text>
      {escape_html(success_message) if success_message else "Thank you, we have received your response."}
    </mj-text>
    <mj-text color="{THEME['text_muted']}">Form: {escape_html(form_name)}</mj-text>
    """
    return get_base_template(
        title="Submission received",
        preview_text=f"We received your response to {escape_html(form_name)}",
        content_sections=content,
    )


def form_submission_notification_template(form_name: str, answers: list[tuple[str, str]], admin_url: str) -> str:
    content = f"""
    <mj-text>A new response was submitted to <strong>{escape_html(form_name)}</strong>.</mj-text>
    {_details_table(answers)}
    """
    return get_base_template(
        title="New form submission",
        preview_text=f"New response to {escape_html(form_name)}",
        content_sections=content,
        cta_url=admin_url,
        cta_label="View submissions",
    )


def broadcast_template(subject: str, body_html: str) -> str:
    """
    Wrapper for organiser-written messages.
    body_html is already personalised and sanitised by the caller.
    """
    paragraphs = body_html if "<" in body_html else body_html.replace("\n", "<br/>")
    content = f"""
    <mj-text>{paragraphs}</mj-text>
    """
    return get_base_template(title=escape_html(subject), preview_text=escape_html(subject), content_sections=content)

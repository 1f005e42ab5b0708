"""
HTML bodies for activation meeting emails.
"""

from html import escape
from typing import Optional

from activation_api.models.activation_meetings import ActivationMeeting
from activation_api.services.utils.dates import format_in_timezone

CUSTOMER_SUBJECT = "Your Junk Car Calculator Onboarding is Scheduled"
CUSTOMER_RESCHEDULED_SUBJECT = "Your Junk Car Calculator Onboarding Has Moved"
ACTIVATOR_SUBJECT = "New Onboarding Scheduled"
ACTIVATOR_RESCHEDULED_SUBJECT = "Onboarding Rescheduled"
REMINDER_SUBJECT = "Reminder: Your Onboarding Call is Tomorrow"


def _when(meeting: ActivationMeeting) -> str:
    formatted = format_in_timezone(meeting.scheduled_start_at, meeting.scheduled_timezone)
    return f"{escape(formatted)} ({escape(meeting.scheduled_timezone)})"


def _link(meeting_link: Optional[str]) -> str:
    if not meeting_link:
        return ""
    url = escape(meeting_link)
    return f'<p><strong>Meeting Link:</strong> <a href="{url}">{url}</a></p>'


def customer_confirmation(meeting: ActivationMeeting, meeting_link: Optional[str], rescheduled: bool = False) -> str:
    intro = "Your onboarding call has been moved to:" if rescheduled else "Your onboarding call has been scheduled for:"
    return f"""
      <h2>{CUSTOMER_RESCHEDULED_SUBJECT if rescheduled else CUSTOMER_SUBJECT}</h2>
      <p>Hi {escape(meeting.attendee_name)},</p>
      <p>{intro}</p>
      <p style="font-size: 18px; font-weight: bold; color: #2563eb;">{_when(meeting)}</p>
      {_link(meeting_link)}
      <p><strong>What to expect:</strong></p>
      <ul>
        <li>30-minute call to get your calculator set up</li>
        <li>We'll walk through configuration together</li>
        <li>Have access to your website ready if possible</li>
      </ul>
      <p><strong>Phone:</strong> We'll call you at {escape(meeting.phone)}</p>
      <p>If you need to reschedule, please reply to this email or call us.</p>
    """


def activator_notification(
    meeting: ActivationMeeting,
    meeting_link: Optional[str],
    sdr_name: Optional[str],
    rescheduled: bool = False,
) -> str:
    optional = ""
    if meeting.email:
        optional += f"<p><strong>Email:</strong> {escape(meeting.email)}</p>"
    if meeting.objections:
        optional += f"<p><strong>Objections:</strong> {escape(meeting.objections)}</p>"
    if meeting.notes:
        optional += f"<p><strong>Notes:</strong> {escape(meeting.notes)}</p>"

    return f"""
      <h2>{ACTIVATOR_RESCHEDULED_SUBJECT if rescheduled else ACTIVATOR_SUBJECT}</h2>
      <p style="font-size: 18px; font-weight: bold; color: #2563eb;">{_when(meeting)}</p>
      <p><strong>Attendee:</strong> {escape(meeting.attendee_name)} ({escape(meeting.attendee_role)})</p>
      <p><strong>Phone:</strong> {escape(meeting.phone)}</p>
      <p><strong>Website Platform:</strong> {escape(meeting.website_platform)}</p>
      <p><strong>Goal:</strong> {escape(meeting.goal)}</p>
      {optional}
      {_link(meeting_link)}
      <p>Scheduled by: {escape(sdr_name or "SDR")}</p>
    """


def customer_reminder(meeting: ActivationMeeting, meeting_link: Optional[str]) -> str:
    return f"""
      <h2>{REMINDER_SUBJECT}</h2>
      <p>Hi {escape(meeting.attendee_name)},</p>
      <p>Just a reminder that your onboarding call is coming up:</p>
      <p style="font-size: 18px; font-weight: bold; color: #2563eb;">{_when(meeting)}</p>
      {_link(meeting_link)}
      <p>We'll call you at {escape(meeting.phone)}. Please have access to your website ready.</p>
    """

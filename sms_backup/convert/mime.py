"""
MIME rendering of converted messages.
"""

import mailbox
from email.message import EmailMessage
from email.policy import SMTP
from email.utils import format_datetime

from sms_backup.convert.converter import ConvertedMessage


def to_mime(message: ConvertedMessage) -> EmailMessage:
    """
    Render a ConvertedMessage as a text/plain email.

    Headers with a None value are left out.
    """
    mime = EmailMessage(policy=SMTP)
    mime["From"] = str(message.from_address)
    mime["To"] = str(message.to_address)
    mime["Subject"] = message.subject
    if message.sent_date is not None:
        mime["Date"] = format_datetime(message.sent_date)
    for name, value in message.headers.items():
        if value is not None:
            mime[name] = value
    mime.set_content(message.body, charset="utf-8")
    return mime


def to_mbox_message(message: ConvertedMessage) -> mailbox.mboxMessage:
    """Render a ConvertedMessage for an mbox, carrying the seen flag."""
    mbox_message = mailbox.mboxMessage(to_mime(message))
    if message.sent_date is not None:
        mbox_message.set_from("MAILER-DAEMON", message.sent_date.timetuple())
    if message.seen:
        mbox_message.set_flags("RO")
    return mbox_message

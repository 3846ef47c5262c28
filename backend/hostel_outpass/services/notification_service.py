"""Notification dispatch and audit recording."""
import asyncio
import logging
import smtplib
import time
import uuid
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from email.message import EmailMessage
from email.utils import make_msgid
from typing import List, Optional, Sequence

import requests

from hostel_outpass.exceptions import DispatchError
from hostel_outpass.models import (
    Notification, NotificationCategory, NotificationChannel, NotificationPriority,
    NotificationStatus, Outpass, RecipientType
)
from hostel_outpass.repositories import NotificationRepository
from hostel_outpass.services.messages import format_indian_phone_number
from hostel_outpass.utils.helpers import utcnow

logger = logging.getLogger(__name__)

TWILIO_MESSAGES_URL = "https://api.twilio.com/2010-04-01/Accounts/{sid}/Messages.json"
TWILIO_UNVERIFIED_NUMBER = 21608


@dataclass
class DispatchResult:
    """Outcome of one successful delivery."""
    success: bool
    message_id: str
    channel: str


@dataclass
class NotificationPlan:
    """One message the workflow wants delivered."""
    recipient_type: RecipientType
    recipient_id: str
    channel: NotificationChannel
    message: str
    address: Optional[str] = None
    subject: Optional[str] = None
    priority: NotificationPriority = NotificationPriority.NORMAL


class TwilioSmsSender:
    """Send SMS through the Twilio REST API, or log them in mock mode."""

    def __init__(
        self,
        account_sid: str = None,
        auth_token: str = None,
        from_number: str = None,
        messaging_service_sid: str = None,
        mock: bool = True,
        timeout: float = 10
    ):
        self.account_sid = account_sid
        self.auth_token = auth_token
        self.from_number = from_number
        self.messaging_service_sid = messaging_service_sid
        self.mock = mock
        self.timeout = timeout

    def send(self, to: str, message: str) -> DispatchResult:
        to = format_indian_phone_number(to)

        if self.mock:
            logger.info("[MOCK SMS] To: %s, Message: %s", to, message)
            return DispatchResult(True, f"mock_{int(time.time() * 1000)}", 'sms')

        if not self.account_sid or not self.auth_token or \
                not (self.from_number or self.messaging_service_sid):
            raise DispatchError("Twilio credentials are not properly configured", channel='sms')

        payload = {'To': to, 'Body': message}
        if self.messaging_service_sid:
            payload['MessagingServiceSid'] = self.messaging_service_sid
        else:
            payload['From'] = self.from_number

        try:
            response = requests.post(
                TWILIO_MESSAGES_URL.format(sid=self.account_sid),
                data=payload,
                auth=(self.account_sid, self.auth_token),
                timeout=self.timeout
            )
            result = response.json()
        except (requests.RequestException, ValueError) as e:
            raise DispatchError(f"SMS request failed: {e}", channel='sms') from e

        if not response.ok:
            if result.get('code') == TWILIO_UNVERIFIED_NUMBER:
                raise DispatchError(
                    f"The number {to} is unverified. Please verify it in your Twilio account.",
                    channel='sms'
                )
            raise DispatchError(result.get('message') or "Failed to send SMS", channel='sms')

        return DispatchResult(True, result.get('sid'), 'sms')


class SmtpEmailSender:
    """Send plain-text email over SMTP over SSL, or log them in mock mode."""

    def __init__(
        self,
        host: str = None,
        port: int = 465,
        username: str = None,
        password: str = None,
        sender: str = None,
        mock: bool = True,
        timeout: float = 10
    ):
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.sender = sender
        self.mock = mock
        self.timeout = timeout

    def send(self, to: str, subject: str, message: str) -> DispatchResult:
        subject = subject or "Hostel Outpass Notification"

        if self.mock:
            logger.info("[MOCK EMAIL] To: %s, Subject: %s", to, subject)
            return DispatchResult(True, f"mock_{int(time.time() * 1000)}", 'email')

        if not self.host or not self.username or not self.password:
            raise DispatchError("SMTP credentials are not properly configured", channel='email')

        msg = EmailMessage()
        msg['Subject'] = subject
        msg['From'] = self.sender or self.username
        msg['To'] = to
        msg['Message-ID'] = make_msgid(domain='hostel-outpass')
        msg.set_content(message)

        try:
            with smtplib.SMTP_SSL(self.host, self.port, timeout=self.timeout) as smtp:
                smtp.login(self.username, self.password)
                smtp.send_message(msg)
        except (smtplib.SMTPException, OSError) as e:
            raise DispatchError(f"Email delivery failed: {e}", channel='email') from e

        return DispatchResult(True, msg['Message-ID'], 'email')


class NotificationDispatcher:
    """Delivery boundary: ``dispatch(channel, address, message)``.

    Implementations raise ``DispatchError`` when a channel fails.
    """

    async def dispatch(
        self,
        channel: NotificationChannel,
        recipient_address: Optional[str],
        message: str,
        subject: Optional[str] = None
    ) -> DispatchResult:
        raise NotImplementedError


class ChannelDispatcher(NotificationDispatcher):
    """Route SMS and email to their providers; app/system messages live in the feed."""

    def __init__(self, sms_sender: TwilioSmsSender, email_sender: SmtpEmailSender, max_workers: int = 8):
        self.sms_sender = sms_sender
        self.email_sender = email_sender
        # Kept apart from the loop's default executor, which asyncio.run joins on exit
        self.executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="notify")

    @classmethod
    def from_config(cls, config) -> 'ChannelDispatcher':
        timeout = config.get('NOTIFICATION_TIMEOUT_SECONDS', 10)
        sms_sender = TwilioSmsSender(
            account_sid=config.get('TWILIO_ACCOUNT_SID'),
            auth_token=config.get('TWILIO_AUTH_TOKEN'),
            from_number=config.get('TWILIO_PHONE_NUMBER'),
            messaging_service_sid=config.get('TWILIO_MESSAGING_SERVICE_SID'),
            mock=config.get('MOCK_SMS', True),
            timeout=timeout
        )
        email_sender = SmtpEmailSender(
            host=config.get('SMTP_HOST'),
            port=config.get('SMTP_PORT', 465),
            username=config.get('SMTP_USERNAME'),
            password=config.get('SMTP_PASSWORD'),
            sender=config.get('MAIL_SENDER'),
            mock=config.get('MOCK_EMAIL', True),
            timeout=timeout
        )
        return cls(sms_sender, email_sender)

    async def dispatch(self, channel, recipient_address, message, subject=None) -> DispatchResult:
        channel = NotificationChannel(channel)

        if channel == NotificationChannel.SMS:
            if not recipient_address:
                raise DispatchError("SMS recipient has no phone number", channel='sms')
            return await self._in_executor(self.sms_sender.send, recipient_address, message)

        if channel == NotificationChannel.EMAIL:
            if not recipient_address:
                raise DispatchError("Email recipient has no address", channel='email')
            return await self._in_executor(self.email_sender.send, recipient_address, subject, message)

        # In-app and system notifications are delivered by being recorded
        return DispatchResult(True, f"{channel.value}_{uuid.uuid4().hex[:12]}", channel.value)

    async def _in_executor(self, func, *args) -> DispatchResult:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(self.executor, func, *args)


class NotificationService:
    """Fan notifications out concurrently and record every attempt."""

    def __init__(
        self,
        dispatcher: NotificationDispatcher,
        repository: NotificationRepository,
        timeout_seconds: float = 10
    ):
        self.dispatcher = dispatcher
        self.repository = repository
        self.timeout_seconds = timeout_seconds

    def notify(
        self,
        outpass: Outpass,
        plans: Sequence[NotificationPlan],
        category: NotificationCategory,
        outpass_status: Optional[str] = None
    ) -> List[Notification]:
        """Deliver ``plans`` and persist one Notification per plan.

        Delivery failures are logged and recorded as ``failed``; they never
        propagate to the caller.
        """
        if not plans:
            return []

        outcomes = asyncio.run(self._dispatch_all(plans))

        records = []
        for plan, (result, error) in zip(plans, outcomes):
            records.append(Notification(
                type=plan.recipient_type,
                recipient_id=plan.recipient_id,
                outpass_id=outpass.code,
                outpass_record_id=outpass.id,
                channel=plan.channel,
                address=plan.address,
                subject=plan.subject,
                message=plan.message,
                priority=plan.priority,
                category=category,
                outpass_status=outpass_status,
                status=NotificationStatus.SENT if result else NotificationStatus.FAILED,
                provider_message_id=result.message_id if result else None,
                error=error,
                sent_at=utcnow()
            ))

        return self.repository.add_all(records)

    async def _dispatch_all(self, plans: Sequence[NotificationPlan]):
        return await asyncio.gather(*(self._dispatch_one(plan) for plan in plans))

    async def _dispatch_one(self, plan: NotificationPlan):
        try:
            result = await asyncio.wait_for(
                self.dispatcher.dispatch(plan.channel, plan.address, plan.message, plan.subject),
                timeout=self.timeout_seconds
            )
        except asyncio.TimeoutError:
            logger.error("Notification to %s %s via %s timed out after %ss",
                         plan.recipient_type.value, plan.recipient_id,
                         plan.channel.value, self.timeout_seconds)
            return None, f"Timed out after {self.timeout_seconds}s"
        except DispatchError as e:
            logger.error("Notification to %s %s via %s failed: %s",
                         plan.recipient_type.value, plan.recipient_id, plan.channel.value, e.message)
            return None, e.message
        except Exception as e:
            logger.exception("Unexpected dispatcher error for %s via %s",
                             plan.recipient_id, plan.channel.value)
            return None, str(e)

        logger.info("Notification sent to %s %s via %s (%s)",
                    plan.recipient_type.value, plan.recipient_id,
                    plan.channel.value, result.message_id)
        return result, None

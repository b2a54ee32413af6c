"""SMS notifier for completion notices, delivered through the Aligo SMS API."""

from typing import Any, Callable, Optional
from uuid import UUID

import httpx
import structlog

from stylegen.services.exceptions import NotificationError

logger = structlog.get_logger(__name__)

ALIGO_SEND_URL = "https://apis.aligo.in/send/"

MESSAGE_TEMPLATES = {
    "generation_complete": (
        "Your {variant_count} new styles are ready. Pick your favorite: {link}"
    ),
}


def render_message(event_kind: str, context: dict[str, Any]) -> str:
    """Render the SMS body for an event.

    Raises:
        NotificationError: If the event kind has no template or context is incomplete
    """
    template = MESSAGE_TEMPLATES.get(event_kind)
    if template is None:
        raise NotificationError(f"No message template for event {event_kind}")
    try:
        return template.format(**context)
    except KeyError as e:
        raise NotificationError(f"Missing context value {e} for event {event_kind}") from e


class SmsNotifier:
    """Best-effort notifier: delivery failures are logged and never propagated."""

    def __init__(
        self,
        uow_factory: Callable,
        user_id: str,
        api_key: str,
        sender: str,
        timeout_seconds: float = 15.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize SMS notifier.

        Args:
            uow_factory: UnitOfWork factory used to resolve owner phone numbers
            user_id: Aligo account id
            api_key: Aligo API key
            sender: Registered sender number
            timeout_seconds: Per-request timeout
            transport: Optional httpx transport (used to stub the network in tests)
        """
        self.uow_factory = uow_factory
        self.user_id = user_id
        self.api_key = api_key
        self.sender = sender
        self.timeout_seconds = timeout_seconds
        self.transport = transport

    async def notify(self, owner_id: UUID, event_kind: str, context: dict[str, Any]) -> bool:
        """Send a notification to a job owner.

        Args:
            owner_id: Recipient owner
            event_kind: Template key (e.g., "generation_complete")
            context: Template values

        Returns:
            True if the message was accepted by the SMS gateway, False otherwise
        """
        async with await self.uow_factory() as uow:
            owner = await uow.owners.get_by_id(owner_id)

        if owner is None or not owner.phone:
            logger.info("notification.skipped", owner_id=str(owner_id), reason="no_phone")
            return False

        try:
            message = render_message(event_kind, context)
            await self._send(owner.phone, message)
        except NotificationError as e:
            logger.warning(
                "notification.failed",
                owner_id=str(owner_id),
                event_kind=event_kind,
                error_message=str(e),
            )
            return False

        logger.info("notification.sent", owner_id=str(owner_id), event_kind=event_kind)
        return True

    async def _send(self, phone: str, message: str) -> None:
        """Post one SMS to the Aligo gateway.

        Raises:
            NotificationError: On network failure or a gateway rejection
        """
        if not self.api_key:
            raise NotificationError("ALIGO_API_KEY not configured")

        form = {
            "user_id": self.user_id,
            "key": self.api_key,
            "sender": self.sender,
            "receiver": phone,
            "msg": message,
            "msg_type": "SMS" if len(message.encode("utf-8")) <= 90 else "LMS",
        }
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout_seconds, transport=self.transport
            ) as client:
                response = await client.post(ALIGO_SEND_URL, data=form)
                response.raise_for_status()
                body = response.json()
        except httpx.HTTPError as e:
            raise NotificationError(f"SMS gateway request failed: {e}") from e
        except ValueError as e:
            raise NotificationError(f"SMS gateway returned invalid JSON: {e}") from e

        # Aligo reports success as result_code 1, failures as negative codes
        if str(body.get("result_code")) != "1":
            raise NotificationError(
                f"SMS gateway rejected message ({body.get('result_code')}): {body.get('message')}"
            )

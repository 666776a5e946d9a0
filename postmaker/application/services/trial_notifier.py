"""Scheduled lifecycle emails for trial subscriptions."""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timedelta
from typing import Callable, Dict

from ...domain.models import User
from ...domain.ports.persistence import SubscriptionStore
from ...domain.ports.providers import NotificationSender
from ...domain.trial_policy import DAY, trial_days_remaining, utcnow

logger = logging.getLogger(__name__)

REMINDER_WINDOW_START = 5 * DAY
REMINDER_WINDOW_END = 6 * DAY
EXPIRED_LOOKBACK = timedelta(hours=24)


class TrialNotifier:
    """Sends "trial expiring" and "trial expired" emails at most once per subscription.

    The idempotency flag is claimed with a conditional update before sending,
    so two overlapping runs cannot both email the same user. A failed send
    releases the claim and the next run retries it.
    """

    def __init__(
        self,
        store: SubscriptionStore,
        sender: NotificationSender,
        clock: Callable[[], datetime] = utcnow,
        send_delay_seconds: float = 0.1,
    ) -> None:
        self._store = store
        self._sender = sender
        self._clock = clock
        self._send_delay_seconds = send_delay_seconds

    async def send_trial_expiring_emails(self) -> Dict[str, int]:
        now = self._clock()
        candidates = self._store.list_trials_for_reminder(
            now + REMINDER_WINDOW_START, now + REMINDER_WINDOW_END
        )
        logger.info("Found %s users with trials expiring soon", len(candidates))

        sent = errors = 0
        for subscription, user in candidates:
            if not user.is_verified:
                continue
            if not self._store.claim_trial_reminder(subscription.id):
                logger.debug("Trial reminder for subscription %s already claimed", subscription.id)
                continue
            days_remaining = trial_days_remaining(subscription.trial_end_date, now)
            if await self._deliver(
                self._sender.send_trial_expiring_email, user, days_remaining
            ):
                sent += 1
                logger.info("Sent trial expiring email to %s", user.email)
            else:
                self._store.release_trial_reminder(subscription.id)
                errors += 1
            await asyncio.sleep(self._send_delay_seconds)

        logger.info("Trial expiring emails: %s sent, %s errors", sent, errors)
        return {"sent": sent, "errors": errors}

    async def send_trial_expired_emails(self) -> Dict[str, int]:
        now = self._clock()
        candidates = self._store.list_trials_for_expiry_notice(now - EXPIRED_LOOKBACK, now)
        logger.info("Found %s users with recently expired trials", len(candidates))

        sent = errors = 0
        for subscription, user in candidates:
            if not user.is_verified:
                continue
            if not self._store.claim_trial_expired_email(subscription.id):
                logger.debug("Trial expired email for subscription %s already claimed", subscription.id)
                continue
            if await self._deliver(self._sender.send_trial_expired_email, user):
                self._store.mark_trial_expired(subscription.id)
                sent += 1
                logger.info("Sent trial expired email to %s", user.email)
            else:
                self._store.release_trial_expired_email(subscription.id)
                errors += 1
            await asyncio.sleep(self._send_delay_seconds)

        logger.info("Trial expired emails: %s sent, %s errors", sent, errors)
        return {"sent": sent, "errors": errors}

    async def run_all(self) -> Dict[str, Dict[str, int]]:
        logger.info("Running trial notification jobs")
        expiring, expired = await asyncio.gather(
            self.send_trial_expiring_emails(),
            self.send_trial_expired_emails(),
        )
        return {"trialExpiring": expiring, "trialExpired": expired}

    @staticmethod
    async def _deliver(send: Callable[..., bool], user: User, *args) -> bool:
        # SMTP is blocking; keep it off the event loop.
        try:
            return bool(await asyncio.to_thread(send, user.email, user.first_name, *args))
        except Exception:
            logger.exception("Error sending email to %s", user.email)
            return False

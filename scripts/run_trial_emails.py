"""Run the trial lifecycle email jobs without going through the HTTP cron endpoint."""

import argparse
import asyncio
import json

from postmaker.application.services.trial_notifier import TrialNotifier
from postmaker.core.config import Settings
from postmaker.core.logging import configure_logging
from postmaker.infrastructure.persistence.sqlite import SQLitePersistence
from postmaker.services.email_service import EmailService


async def main(job: str) -> None:
    configure_logging()
    settings = Settings()
    persistence = SQLitePersistence(settings.database_path)
    sender = EmailService(
        smtp_host=settings.smtp_host,
        smtp_port=settings.smtp_port,
        smtp_username=settings.smtp_username,
        smtp_password=settings.smtp_password,
        from_email=settings.smtp_from_email,
        app_url=settings.frontend_base_url,
    )
    notifier = TrialNotifier(persistence, sender, send_delay_seconds=settings.email_send_delay_ms / 1000)

    try:
        if job == "expiring":
            result = await notifier.send_trial_expiring_emails()
        elif job == "expired":
            result = await notifier.send_trial_expired_emails()
        else:
            result = await notifier.run_all()
    finally:
        persistence.close()

    print(json.dumps(result, indent=2))


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("job", nargs="?", choices=("all", "expiring", "expired"), default="all")
    asyncio.run(main(parser.parse_args().job))

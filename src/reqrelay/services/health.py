"""Dependency health checks shared by GET /health and `reqrelay-api --health-check`.

Each check opens its own short-lived connection so the report reflects what
a freshly started process would see, not the state of pooled connections:

- database: connect, ping, and `SELECT 1` must return 1
- rabbitmq: connect and open a channel
- migrations: the configured migration directory exists
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path
from typing import TYPE_CHECKING, Any

import aio_pika
from sqlalchemy import pool, text
from sqlalchemy.ext.asyncio import create_async_engine

if TYPE_CHECKING:
    from reqrelay.core.config import Settings

logger = logging.getLogger(__name__)

STATUS_HEALTHY = "healthy"
STATUS_UNHEALTHY = "unhealthy"
CHECK_OK = "OK"

DEFAULT_CHECK_TIMEOUT = 5.0


@dataclass
class HealthStatus:
    """Result of a health run.

    Attributes:
        status: "healthy" only when every check reported OK.
        timestamp: When the checks ran (UTC).
        checks: Check name -> "OK" or "ERROR: <reason>".
    """

    status: str = STATUS_HEALTHY
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))
    checks: dict[str, str] = field(default_factory=dict)

    @property
    def is_healthy(self) -> bool:
        return self.status == STATUS_HEALTHY

    def record(self, name: str, error: str | None) -> None:
        """Record one check outcome; any error makes the whole status unhealthy."""
        if error is None:
            self.checks[name] = CHECK_OK
        else:
            self.checks[name] = f"ERROR: {error}"
            self.status = STATUS_UNHEALTHY

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.status,
            "timestamp": self.timestamp.isoformat(),
            "checks": dict(self.checks),
        }

    def format_report(self) -> str:
        """Human-readable report for the CLI."""
        rule = "-" * 40
        lines = [
            "Application Health Check",
            rule,
            f"Status:    {self.status}",
            f"Timestamp: {self.timestamp.strftime('%Y-%m-%d %H:%M:%S')}",
            rule,
            "Checks:",
        ]
        for name, value in self.checks.items():
            mark = "[ok]  " if value == CHECK_OK else "[fail]"
            lines.append(f"  {mark} {name:<12}: {value}")
        lines.append(rule)
        if self.is_healthy:
            lines.append("All systems operational")
        else:
            lines.append("Some systems need attention")
        return "\n".join(lines)


async def check_database(url: str, timeout: float = DEFAULT_CHECK_TIMEOUT) -> str | None:
    """Connect to the database and run a trivial query.

    Args:
        url: SQLAlchemy async URL (postgresql+psycopg://...).
        timeout: Seconds allowed for the whole check.

    Returns:
        None if healthy, otherwise the failure reason.
    """
    engine = create_async_engine(url, poolclass=pool.NullPool)
    try:
        async with asyncio.timeout(timeout):
            async with engine.connect() as conn:
                result = await conn.execute(text("SELECT 1"))
                value = result.scalar()
    except TimeoutError:
        return f"timed out after {timeout:g}s"
    except Exception as e:  # noqa: BLE001 - any failure is reported, not raised
        return f"failed to connect: {e}"
    finally:
        await engine.dispose()

    if value != 1:
        return f"unexpected query result: {value}"
    return None


async def check_rabbitmq(url: str, timeout: float = DEFAULT_CHECK_TIMEOUT) -> str | None:
    """Connect to the broker and open a channel.

    Returns:
        None if healthy, otherwise the failure reason.
    """
    try:
        connection = await aio_pika.connect(url, timeout=timeout)
    except Exception as e:  # noqa: BLE001 - any failure is reported, not raised
        return f"failed to connect: {e}"

    try:
        channel = await connection.channel()
        await channel.close()
    except Exception as e:  # noqa: BLE001 - any failure is reported, not raised
        return f"failed to open channel: {e}"
    finally:
        await connection.close()
    return None


def check_migrations(path: str) -> str | None:
    """Check that the migration directory exists.

    Returns:
        None if it exists, otherwise the failure reason.
    """
    migrations = Path(path)
    if not migrations.exists():
        return f"Migration path not found: {path}"
    if not migrations.is_dir():
        return f"Migration path is not a directory: {path}"
    return None


async def run_health_check(settings: Settings) -> HealthStatus:
    """Run all checks and collect a report.

    Args:
        settings: Application settings providing URLs and the migration path.

    Returns:
        HealthStatus with one entry per check (database, rabbitmq, migrations).
    """
    status = HealthStatus()

    status.record(
        "database",
        await check_database(settings.database.driver_url, settings.database.connect_timeout),
    )
    status.record(
        "rabbitmq",
        await check_rabbitmq(settings.rabbitmq.url, settings.rabbitmq.connect_timeout),
    )
    status.record("migrations", check_migrations(settings.migration_path))

    if not status.is_healthy:
        logger.warning("Health check failed: %s", status.checks)
    return status

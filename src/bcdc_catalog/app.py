"""Application orchestration entry points."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING

from bcdc_catalog.adapters.catalogue import CatalogueProvider, CatalogueSyncResult
from bcdc_catalog.adapters.sqlalchemy import create_entity_sink
from bcdc_catalog.config import get_catalogue_config, get_schedule_config

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from bcdc_catalog.config import CatalogueConfig, ScheduleConfig
    from bcdc_catalog.domain.ports.sink import EntitySink

type SleepFunc = Callable[[float], Awaitable[None]]

log = getLogger(__name__)


@dataclass(slots=True)
class ScheduleReport:
    """Counts the outcomes of scheduled runs."""

    runs: int = 0
    applied: int = 0
    aborted: int = 0
    failed: int = 0
    timed_out: int = 0
    results: list[CatalogueSyncResult] = field(default_factory=list[CatalogueSyncResult])


def build_catalogue_provider(
    *,
    config: CatalogueConfig | None = None,
    sink: EntitySink | None = None,
    database_uri: str | None = None,
) -> CatalogueProvider:
    effective_config = config or get_catalogue_config()
    effective_sink = sink or create_entity_sink(database_uri)
    return CatalogueProvider(config=effective_config, sink=effective_sink)


def sync_catalogue(
    *,
    provider: CatalogueProvider | None = None,
    database_uri: str | None = None,
) -> CatalogueSyncResult:
    """Run one full catalogue sync using the configured adapters."""

    effective_provider = provider or build_catalogue_provider(database_uri=database_uri)
    log.info("Starting catalogue sync: provider=%s", effective_provider.provider_name)

    result = effective_provider.run()

    log.info(
        f"Finished catalogue sync: state={result.state}, packages={result.packages}, "
        f"entities={result.entities}, applied={result.applied}"
    )
    return result


async def run_catalogue_schedule(
    provider: CatalogueProvider,
    *,
    schedule: ScheduleConfig | None = None,
    max_runs: int | None = None,
    sleep: SleepFunc = asyncio.sleep,
) -> ScheduleReport:
    """Run the provider every ``frequency_seconds`` until ``max_runs`` is reached.

    Runs never overlap. A run exceeding ``timeout_seconds`` is cancelled, and
    failed runs are logged without stopping the schedule.
    """

    effective = schedule or get_schedule_config()
    report = ScheduleReport()
    loop = asyncio.get_running_loop()

    while max_runs is None or report.runs < max_runs:
        started = loop.time()
        report.runs += 1
        try:
            async with asyncio.timeout(effective.timeout_seconds):
                result = await provider.run_async()
        except TimeoutError:
            report.timed_out += 1
            log.error(
                "Run %s of %s timed out after %ss",
                report.runs,
                provider.provider_name,
                effective.timeout_seconds,
            )
        except Exception:
            report.failed += 1
            log.exception("Run %s of %s failed", report.runs, provider.provider_name)
        else:
            report.results.append(result)
            if result.applied:
                report.applied += 1
            else:
                report.aborted += 1

        if max_runs is not None and report.runs >= max_runs:
            break
        elapsed = loop.time() - started
        await sleep(max(effective.frequency_seconds - elapsed, 0.0))

    return report


def schedule_catalogue(
    *,
    provider: CatalogueProvider | None = None,
    schedule: ScheduleConfig | None = None,
    max_runs: int | None = None,
    database_uri: str | None = None,
) -> ScheduleReport:
    effective_provider = provider or build_catalogue_provider(database_uri=database_uri)
    effective_schedule = schedule or get_schedule_config()
    log.info(
        "Scheduling %s every %ss (timeout %ss, max_runs=%s)",
        effective_provider.provider_name,
        effective_schedule.frequency_seconds,
        effective_schedule.timeout_seconds,
        max_runs,
    )
    return asyncio.run(
        run_catalogue_schedule(
            effective_provider,
            schedule=effective_schedule,
            max_runs=max_runs,
        )
    )

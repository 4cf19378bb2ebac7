"""Wiring of the trigger subsystem components into one object.

The runtime is built once at startup and handed to cogs and the console, so
each of them works against injected instances rather than module globals.
"""

from __future__ import annotations

from dataclasses import dataclass

from nekovilo.configuration.app_configuration import app_config
from nekovilo.matching.trigger_matcher import TriggerMatcher
from nekovilo.repositories.rules_repo import RuleRepository
from nekovilo.rules_cache.trigger_cache import TriggerCache
from nekovilo.scheduler.reload_scheduler import ReloadScheduler
from nekovilo.services.rule_admin_service import RuleAdministrationService


@dataclass(slots=True)
class TriggerRuntime:
    repository: RuleRepository
    cache: TriggerCache
    matcher: TriggerMatcher
    admin: RuleAdministrationService
    scheduler: ReloadScheduler


def build_trigger_runtime(repository: RuleRepository) -> TriggerRuntime:
    cache = TriggerCache(repository)
    return TriggerRuntime(
        repository=repository,
        cache=cache,
        matcher=TriggerMatcher(cache),
        admin=RuleAdministrationService(repository, cache),
        scheduler=ReloadScheduler(
            "TRIGGER RELOAD",
            cache.reload,
            lambda: app_config.trigger_reload_interval,
        ),
    )

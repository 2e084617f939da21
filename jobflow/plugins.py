"""
This module implements the business rule plugin contract.

Plugin modules need to be registered using the jobflow.rules entrypoint. Modules
that are registered as such can implement any of the functions:

    def priority():
        return {"businessRules": 10}

    def businessRules():
        # Map a target status literal to extra rules for that status. Each rule
        # is called as rule(job, actor) and returns a RuleResult.
        return {"completed": [requireSignOff]}

All of these functions are optional. If the plugin cannot provide rules for the
current installation then it should raise NotImplementedError so that the next
plugin at a possibly lower priority will get called instead.
"""
from importlib import metadata
import logging
from operator import attrgetter
from typing import Callable, Dict, List

from jobflow.domain import JobStatus

logger = logging.getLogger(__name__)
PRIO_LOWEST = 1 << 31
PRIO_HIGHEST = 0
RULES_GROUP = "jobflow.rules"


def get_plugins(group: str) -> List[metadata.EntryPoint]:
    eps = metadata.entry_points()
    if hasattr(eps, "select"):
        return list(eps.select(group=group))
    # Python < 3.10 returns a plain dict of groups
    return list(eps.get(group, []))


class Plugins(object):
    def __init__(self, group=RULES_GROUP):
        plugins = {plug.load() for plug in get_plugins(group)}
        self.plugins = list(sorted(plugins, key=attrgetter("__name__")))
        logger.debug("all plugins: %r", [p.__name__ for p in self.plugins])
        self._prio = {}
        for plugin in self.plugins:
            if hasattr(plugin, "priority"):
                self._prio[plugin.__name__] = plugin.priority()

    def _pluginCalls(self, func, *args, **kwargs):
        prio = {}
        for plugin in self.plugins:
            if hasattr(plugin, func):
                pluginPrioMap = self._prio.get(plugin.__name__, {})
                pval = pluginPrioMap.get(func, pluginPrioMap.get("", PRIO_LOWEST))
                prio.setdefault(pval, []).append(plugin)

        if not prio:
            return

        for pval, plugins in sorted(prio.items()):
            for plugin in plugins:
                name = plugin.__name__
                try:
                    result = getattr(plugin, func)(*args, **kwargs)
                    logger.debug("%r: yield plugin %s => %r", pval, name, result)
                    yield result
                except NotImplementedError:
                    logger.debug("%r: plugin %s NotImplementedError", pval, name)
                    continue

    def businessRules(self) -> Dict[JobStatus, List[Callable]]:
        rules = {}
        for contributed in self._pluginCalls("businessRules"):
            for status, funcs in (contributed or {}).items():
                rules.setdefault(JobStatus.parse(status), []).extend(funcs)
        return rules

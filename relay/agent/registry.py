"""
Agent Registry - agents known to a deployment.

Every handoff target must be the registered agent of that name at the
moment the handoff happens. Runs without an explicit registry use
AgentRegistry.from_agent(starting_agent).
"""

from collections import deque
from typing import Iterable, Iterator

from relay.exceptions import UserError
from relay.utils.logging import get_logger

from .agent import Agent

logger = get_logger(__name__)


class AgentRegistry:
    def __init__(self, agents: Iterable[Agent] | None = None) -> None:
        self._agents: dict[str, Agent] = {}
        for agent in agents or ():
            self.register(agent)

    def register(self, agent: Agent, replace: bool = False) -> None:
        """
        Register an agent under its name.

        Raises:
            UserError: A different agent is already registered under that name
                and replace is False
        """
        existing = self._agents.get(agent.name)
        if existing is not None and existing is not agent and not replace:
            raise UserError(f"Agent '{agent.name}' is already registered")
        self._agents[agent.name] = agent
        logger.debug("agent_registered", agent=agent.name, replaced=existing is not None)

    def unregister(self, name: str) -> bool:
        if name in self._agents:
            del self._agents[name]
            logger.debug("agent_unregistered", agent=name)
            return True
        return False

    def get(self, name: str) -> Agent | None:
        return self._agents.get(name)

    def contains(self, agent: Agent) -> bool:
        """True if this exact agent is registered under its name."""
        return self._agents.get(agent.name) is agent

    def __contains__(self, item: object) -> bool:
        if isinstance(item, Agent):
            return self.contains(item)
        if isinstance(item, str):
            return item in self._agents
        return False

    def __iter__(self) -> Iterator[Agent]:
        return iter(list(self._agents.values()))

    def __len__(self) -> int:
        return len(self._agents)

    @property
    def names(self) -> list[str]:
        return list(self._agents)

    @classmethod
    def from_agent(cls, root: Agent) -> "AgentRegistry":
        """
        Build a registry from every agent reachable through static handoffs.

        Handoffs resolved dynamically at run time cannot be discovered here and
        must be registered explicitly.
        """
        from relay.handoffs import Handoff

        registry = cls()
        queue: deque[Agent] = deque([root])
        while queue:
            agent = queue.popleft()
            if agent.name in registry:
                continue
            registry.register(agent)
            for target in agent.handoffs:
                if isinstance(target, Agent):
                    queue.append(target)
                elif isinstance(target, Handoff) and target.agent is not None:
                    queue.append(target.agent)
                for allowed in getattr(target, "allowed_agents", None) or ():
                    queue.append(allowed)
        return registry


__all__ = ["AgentRegistry"]

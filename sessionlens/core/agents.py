"""Agent display-name resolution."""

from collections.abc import Mapping

SHORT_ID_LEN = 8


def short_agent_id(agent_id: str) -> str:
    """Return a short display form of an agent id.

    Path-style ids keep their whole first segment (``"researcher/abc"``
    becomes ``"researcher"``). Bare ids such as UUIDs are cut to their
    first 8 characters (``"a1b2c3d4-e5f6-..."`` becomes ``"a1b2c3d4"``).
    """
    if "/" in agent_id:
        head = agent_id.split("/", 1)[0]
        if head:
            return head
    return agent_id[:SHORT_ID_LEN]


def resolve_agent_name(
    agent_id: str | None,
    explicit_name: str | None = None,
    name_map: Mapping[str, str] | None = None,
    fallback: bool = True,
) -> str | None:
    """Resolve a human-readable agent name.

    Precedence:
        1. ``explicit_name`` (the name carried on the event itself)
        2. ``name_map[agent_id]``
        3. ``short_agent_id(agent_id)`` when ``fallback`` is true

    Returns None when nothing resolves.
    """
    if explicit_name:
        return explicit_name
    if agent_id and name_map and agent_id in name_map:
        return name_map[agent_id]
    if fallback and agent_id:
        return short_agent_id(agent_id)
    return None

"""
Lookups shared by the engines.
"""

from typing import Dict, Iterable, List

from stakeflow.gateway import PersistenceGateway, Row, STAKES, PROTOCOLS, in_


async def distinct_user_ids(gateway: PersistenceGateway) -> List[str]:
    """Every user that owns at least one stake, in a stable order."""
    stakes = await gateway.find(STAKES)
    return sorted({stake["user_id"] for stake in stakes})


async def protocols_by_id(gateway: PersistenceGateway, protocol_ids: Iterable[str]) -> Dict[str, Row]:
    ids = sorted(set(protocol_ids))
    if not ids:
        return {}
    protocols = await gateway.find(PROTOCOLS, [in_("id", ids)])
    return {protocol["id"]: protocol for protocol in protocols}

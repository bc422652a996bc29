from HACT.ConsumptionSaving.ConsHANKModel import (
    HouseholdSolution,
    OneAssetHANKType,
    init_one_asset_hank,
)
from HACT.ConsumptionSaving.HANKEconomy import (
    HANKEconomy,
    HANKSteadyState,
    init_hank_economy,
)

__all__ = [
    "HouseholdSolution",
    "OneAssetHANKType",
    "init_one_asset_hank",
    "HANKEconomy",
    "HANKSteadyState",
    "init_hank_economy",
]

#!/usr/bin/env python3
"""
JSON Input/Output

Fixed-point values may be written as JSON integers or as decimal strings
("100000000") so that files produced by tooling without big integers load
without precision loss. Floats are rejected.
"""

import json
from pathlib import Path
from typing import Any, Dict, Tuple, Union

from .errors import InvalidParamsError
from .position import CLMMPosition, FAAsset, LTVMatrix, LiquidationParams, LiquidationResult


def _to_int(value: Any, field: str) -> int:
    if isinstance(value, bool):
        raise InvalidParamsError(f"{field}: expected an integer, got a boolean")
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            raise InvalidParamsError(f"{field}: {value!r} is not an integer")
    raise InvalidParamsError(f"{field}: expected an integer or integer string, got {type(value).__name__}")


def _require(data: Dict[str, Any], key: str, context: str) -> Any:
    if key not in data:
        raise InvalidParamsError(f"{context}: missing field '{key}'")
    return data[key]


def _position_from_dict(data: Dict[str, Any]) -> CLMMPosition:
    return CLMMPosition(
        position_id=str(_require(data, "position_id", "position")),
        liquidity=_to_int(_require(data, "liquidity", "position"), "position.liquidity"),
        tick_lower=_to_int(_require(data, "tick_lower", "position"), "position.tick_lower"),
        tick_upper=_to_int(_require(data, "tick_upper", "position"), "position.tick_upper"),
        current_tick=_to_int(data.get("current_tick", 0), "position.current_tick"),
        debt_x=_to_int(data.get("debt_x", 0), "position.debt_x"),
        debt_y=_to_int(data.get("debt_y", 0), "position.debt_y"),
        pending_fee_and_rewards_value=_to_int(
            data.get("pending_fee_and_rewards_value", 0), "position.pending_fee_and_rewards_value"
        )
    )


def _fa_asset_from_dict(data: Dict[str, Any]) -> FAAsset:
    address = str(_require(data, "address", "fa_asset"))
    return FAAsset(
        address=address,
        amount=_to_int(_require(data, "amount", address), f"{address}.amount"),
        current_price=_to_int(_require(data, "current_price", address), f"{address}.current_price"),
        correlation=_to_int(_require(data, "correlation", address), f"{address}.correlation"),
        decimals=_to_int(_require(data, "decimals", address), f"{address}.decimals")
    )


def params_from_dict(data: Dict[str, Any]) -> LiquidationParams:
    """Build LiquidationParams from a parsed JSON document"""
    ltv_data = data.get("ltv_matrix", {})
    ltv_matrix = LTVMatrix(
        x={asset: _to_int(ltv, f"ltv_matrix.x.{asset}") for asset, ltv in ltv_data.get("x", {}).items()},
        y={asset: _to_int(ltv, f"ltv_matrix.y.{asset}") for asset, ltv in ltv_data.get("y", {}).items()}
    )
    return LiquidationParams(
        position=_position_from_dict(_require(data, "position", "params")),
        ltv_matrix=ltv_matrix,
        fa_assets=[_fa_asset_from_dict(asset) for asset in data.get("fa_assets", [])],
        current_price=_to_int(_require(data, "current_price", "params"), "current_price"),
        x_decimals=_to_int(_require(data, "x_decimals", "params"), "x_decimals"),
        y_decimals=_to_int(_require(data, "y_decimals", "params"), "y_decimals")
    )


def params_to_dict(params: LiquidationParams) -> Dict[str, Any]:
    position = params.position
    return {
        "position": {
            "position_id": position.position_id,
            "liquidity": position.liquidity,
            "tick_lower": position.tick_lower,
            "tick_upper": position.tick_upper,
            "current_tick": position.current_tick,
            "debt_x": position.debt_x,
            "debt_y": position.debt_y,
            "pending_fee_and_rewards_value": position.pending_fee_and_rewards_value
        },
        "ltv_matrix": {
            "x": dict(params.ltv_matrix.x),
            "y": dict(params.ltv_matrix.y)
        },
        "fa_assets": [
            {
                "address": asset.address,
                "amount": asset.amount,
                "current_price": asset.current_price,
                "correlation": asset.correlation,
                "decimals": asset.decimals
            }
            for asset in params.fa_assets
        ],
        "current_price": params.current_price,
        "x_decimals": params.x_decimals,
        "y_decimals": params.y_decimals
    }


def result_to_dict(result: LiquidationResult) -> Dict[str, Any]:
    """Raw fixed-point view of a LiquidationResult"""
    breakdown = result.breakdown
    return {
        "liquidation_prices": {
            "lower": result.lower_liquidation_price,
            "upper": result.upper_liquidation_price
        },
        "current_margin_ratio": result.current_margin_ratio,
        "is_at_risk": result.is_at_risk,
        "margin_buffer": result.margin_buffer,
        "liquidation_distance": {
            "low": result.liquidation_distance.low,
            "high": result.liquidation_distance.high
        },
        "breakdown": {
            "total_assets": breakdown.total_assets,
            "total_debts": breakdown.total_debts,
            "weighted_debt_requirement": breakdown.weighted_debt_requirement,
            "asset_values": dict(breakdown.asset_values)
        }
    }


def _read_json(path: Union[str, Path]) -> Any:
    path = Path(path)
    try:
        with open(path, 'r') as f:
            return json.load(f)
    except json.JSONDecodeError as e:
        raise InvalidParamsError(f"{path}: invalid JSON ({e})")


def load_params(path: Union[str, Path]) -> LiquidationParams:
    """Load a single snapshot from a JSON file"""
    return params_from_dict(_read_json(path))


def load_portfolio(path: Union[str, Path]) -> Tuple[str, Dict[str, LiquidationParams]]:
    """
    Load a set of named snapshots.

    File layout: {"name": "portfolio", "positions": {"<label>": {<params>}, ...}}

    Returns:
        (portfolio name, {label: LiquidationParams}) in file order
    """
    path = Path(path)
    data = _read_json(path)
    positions = _require(data, "positions", str(path))
    if not isinstance(positions, dict):
        raise InvalidParamsError(f"{path}: 'positions' must be an object keyed by label")
    name = str(data.get("name", path.stem))
    return name, {label: params_from_dict(entry) for label, entry in positions.items()}

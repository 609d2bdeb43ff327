from __future__ import annotations

from typing import Dict, Tuple

from puck_sim.physics import BasketSpec


ALL_BASKETS: Tuple[BasketSpec, ...] = (
    BasketSpec(
        id="decent_7g", name="7g Single",
        diameter_mm=58, depth_mm=16, nominal_dose_g=7, hole_count=280, hole_diameter_mm=0.30,
        description="Single basket for ristretto-weight doses. Shallow depth demands precise distribution.",
    ),
    BasketSpec(
        id="decent_14g", name="14g Double",
        diameter_mm=58, depth_mm=22, nominal_dose_g=14, hole_count=340, hole_diameter_mm=0.30,
        description="Standard double basket. Good balance of depth and forgiveness.",
    ),
    BasketSpec(
        id="decent_18g", name="18g Precision",
        diameter_mm=58, depth_mm=25, nominal_dose_g=18, hole_count=380, hole_diameter_mm=0.28,
        description="Precision-etched basket for competition-level consistency. Tighter hole tolerance.",
    ),
    BasketSpec(
        id="decent_20g", name="20g Precision",
        diameter_mm=58, depth_mm=27, nominal_dose_g=20, hole_count=400, hole_diameter_mm=0.28,
        description="Deep precision basket for higher dose ratios. Popular for light roasts.",
    ),
    BasketSpec(
        id="decent_22g", name="22g Triple",
        diameter_mm=58, depth_mm=30, nominal_dose_g=22, hole_count=420, hole_diameter_mm=0.30,
        description="Triple basket for large doses. Requires careful distribution due to puck height.",
    ),
    BasketSpec(
        id="decent_tea", name="Tea Basket",
        diameter_mm=58, depth_mm=25, nominal_dose_g=5, hole_count=380, hole_diameter_mm=0.28,
        has_back_pressure_valve=True, back_pressure_bar=2.0,
        description="Mushroom back-pressure valve (~2 bar). Holds pressure without a coffee puck for tea.",
    ),
)

_BY_ID: Dict[str, BasketSpec] = {b.id: b for b in ALL_BASKETS}

DEFAULT_BASKET = _BY_ID["decent_18g"]


def basket_by_id(basket_id: str) -> BasketSpec:
    try:
        return _BY_ID[basket_id]
    except KeyError:
        raise KeyError(f"Unknown basket {basket_id!r}; expected one of {sorted(_BY_ID)}") from None

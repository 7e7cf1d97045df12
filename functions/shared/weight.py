# Copyright 2025 Google LLC
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
# ==============================================================================

import math
import re

# Fallback weight for products sold by the unit without any weight hint.
DEFAULT_UNIT_WEIGHT_KG = 0.25

_UNIT_WEIGHT_PATTERN = re.compile(r"([\d.,]+)\s*(kg|g)")


def _is_positive_number(value) -> bool:
    return (
        isinstance(value, (int, float))
        and not isinstance(value, bool)
        and math.isfinite(value)
        and value > 0
    )


def format_unit_weight_label(weight_kg: float | None) -> str:
    """
    Formats a unit weight for display.

    Args:
        weight_kg: The weight in kilograms, possibly missing.

    Returns:
        "" when the weight is missing or not positive, "250g" below one
        kilogram, otherwise the weight with at most two decimals, e.g. "1.5 Kg".
    """
    if not _is_positive_number(weight_kg):
        return ""
    if weight_kg < 1:
        grams = int(math.floor(weight_kg * 1000 + 0.5))
        return f"{grams}g"
    kg_value = math.floor(weight_kg * 100 + 0.5) / 100
    label = f"{kg_value:.2f}".rstrip("0").rstrip(".")
    return f"{label} Kg"


def product_weight_kg(
    weight_kg: float | None = None,
    unit: str | None = None,
    measurement: str | None = None,
) -> float:
    """Resolves the weight of one unit of a product, in kilograms."""
    if weight_kg:
        return weight_kg
    match = _UNIT_WEIGHT_PATTERN.search((unit or "").lower())
    if match:
        try:
            raw = float(match.group(1).replace(",", "."))
        except ValueError:
            raw = None
        if raw is not None and math.isfinite(raw):
            return raw if match.group(2) == "kg" else raw / 1000
    if measurement == "kg":
        return 1.0
    return DEFAULT_UNIT_WEIGHT_KG

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

from dataclasses import dataclass

# Rough logistics estimate shown before the real carrier quote is known.
ESTIMATE_BASE_EUROS = 6
ESTIMATE_PER_KG_EUROS = 0.55
ESTIMATE_VALUE_RATE = 0.05
ESTIMATE_MINIMUM_EUROS = 8
MIN_CURRENT_WEIGHT_KG = 0.1


def estimate_logistics_cost(max_weight_kg: float, total_value_euros: float) -> float:
    base = ESTIMATE_BASE_EUROS + max(max_weight_kg, 1) * ESTIMATE_PER_KG_EUROS
    value_based = total_value_euros * ESTIMATE_VALUE_RATE
    return max(base, value_based, ESTIMATE_MINIMUM_EUROS)


@dataclass(frozen=True)
class ShareGainEstimate:
    current_weight_kg: float
    max_weight_kg: float
    remaining_capacity_kg: float
    logistics_cost_euros: float
    potential_credit_euros: float
    progress_percent: float


def estimate_share_gain(
    *,
    max_weight_kg: float,
    total_value_euros: float,
    base_ordered_weight_kg: float,
    participant_weight_kg: float,
    reported_weight_kg: float = 0.0,
) -> ShareGainEstimate:
    """
    Estimates the credit a participant earns if the order fills up.

    Logistics are split by weight, so every extra kilogram shipped lowers the
    cost per kilogram the participant already paid for.
    """
    participant_weight = max(participant_weight_kg, 0.0)
    reported = max(reported_weight_kg or 0.0, 0.0)
    current = max(base_ordered_weight_kg + participant_weight, reported, MIN_CURRENT_WEIGHT_KG)
    max_weight = max(max_weight_kg, current)
    logistics_cost = estimate_logistics_cost(max_weight_kg, total_value_euros)
    cost_per_kg_now = logistics_cost / current
    cost_per_kg_at_max = logistics_cost / max_weight
    return ShareGainEstimate(
        current_weight_kg=current,
        max_weight_kg=max_weight,
        remaining_capacity_kg=max(max_weight_kg - current, 0.0),
        logistics_cost_euros=logistics_cost,
        potential_credit_euros=max(0.0, participant_weight * (cost_per_kg_now - cost_per_kg_at_max)),
        progress_percent=min(100.0, current / max_weight * 100),
    )

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

CENTS_PER_EURO = 100


def round_half_up(value: float) -> int:
    """Rounds to the nearest integer, halves going up (like JS Math.round)."""
    return int(math.floor(value + 0.5))


def euros_to_cents(value: float | None) -> int:
    if value is None or not math.isfinite(value):
        return 0
    return round_half_up(value * CENTS_PER_EURO)


def cents_to_euros(value: int | None) -> float:
    if value is None:
        return 0.0
    return value / CENTS_PER_EURO


def format_euros_from_cents(value: int | None) -> str:
    """
    Formats cents the French way, e.g. 123456 -> "1 234,56 €".

    A narrow no-break space separates thousands, like Intl.NumberFormat('fr-FR').
    """
    cents = value or 0
    sign = "-" if cents < 0 else ""
    euros, remainder = divmod(abs(cents), CENTS_PER_EURO)
    grouped = f"{euros:,}".replace(",", "\u202f")
    return f"{sign}{grouped},{remainder:02d}\u00a0€"

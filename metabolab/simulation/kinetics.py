"""Reaction kinetics and thermodynamics.

Rates follow Michaelis-Menten saturation with a limiting-species rule: the
least saturated substrate (or product, for the reverse direction) bounds the
rate, approximating an ordered mechanism instead of independent binding.
Thermodynamics gate and damp both directions:

* ``Keq = exp(-dG0 / RT)``
* ``dG = dG0 + RT ln Q`` for reactions with both substrates and products;
  sources and sinks report ``dG0``.
* forward flux is blocked above ``+10`` kJ/mol, reverse flux below ``-10``.
* reverse Vmax obeys the Haldane relationship ``vmax / max(Keq, 0.01)``.

Everything here is a pure function of its arguments.  The only side effect in
the module is :func:`update_reaction_state`, which writes a reaction's own
``current_*`` fields.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Mapping, Tuple

from .entities import Reaction

GAS_CONSTANT = 8.314e-3  # kJ/(mol K)
MIN_CONCENTRATION = 1e-9
FORWARD_BLOCK_DELTA_G = 10.0
REVERSE_BLOCK_DELTA_G = -10.0
MIN_KEQ = 0.01
NEGLIGIBLE_RATE = 1e-12
_MAX_EXPONENT = 700.0


@dataclass(frozen=True)
class ReactionRates:
    """Instantaneous rates and energetics of one reaction."""

    reaction_id: str
    forward: float
    reverse: float
    delta_g_actual: float
    keq: float
    useful_work: float
    heat: float

    @property
    def net(self) -> float:
        return self.forward - self.reverse


def _safe_exp(exponent: float) -> float:
    return math.exp(max(-_MAX_EXPONENT, min(_MAX_EXPONENT, exponent)))


def rt(temperature: float) -> float:
    return GAS_CONSTANT * max(float(temperature), 1e-6)


def equilibrium_constant(delta_g0: float, temperature: float) -> float:
    return _safe_exp(-delta_g0 / rt(temperature))


def _log_quotient(reaction: Reaction, concentrations: Mapping[str, float]) -> float:
    log_q = 0.0
    for name, stoich in reaction.products.items():
        log_q += stoich * math.log(max(concentrations.get(name, 0.0), MIN_CONCENTRATION))
    for name, stoich in reaction.substrates.items():
        log_q -= stoich * math.log(max(concentrations.get(name, 0.0), MIN_CONCENTRATION))
    return log_q


def reaction_quotient(reaction: Reaction, concentrations: Mapping[str, float]) -> float:
    """``Q = prod([P]^n) / prod([S]^n)`` with concentrations floored at 1e-9."""

    return _safe_exp(_log_quotient(reaction, concentrations))


def actual_delta_g(reaction: Reaction, concentrations: Mapping[str, float]) -> float:
    if reaction.is_source or reaction.is_sink:
        return reaction.delta_g
    return reaction.delta_g + rt(reaction.temperature) * _log_quotient(reaction, concentrations)


def limiting_saturation(species: Mapping[str, float], km: float, concentrations: Mapping[str, float]) -> float:
    """Minimum Michaelis-Menten saturation ``S / (Km + S)`` over ``species``."""

    if not species:
        return 0.0
    saturations = []
    for name in species:
        level = max(0.0, concentrations.get(name, 0.0))
        denominator = max(km + level, MIN_CONCENTRATION)
        saturations.append(level / denominator)
    return min(saturations)


def reverse_vmax(reaction: Reaction) -> float:
    """Haldane reverse Vmax, with Keq floored at 0.01."""

    keq = equilibrium_constant(reaction.delta_g, reaction.temperature)
    return reaction.vmax / max(keq, MIN_KEQ)


def forward_rate(
    reaction: Reaction,
    concentrations: Mapping[str, float],
    enzyme_concentration: float,
    delta_g: float | None = None,
) -> float:
    if enzyme_concentration <= 0.0:
        return 0.0
    if reaction.is_source:
        return reaction.vmax * enzyme_concentration
    if delta_g is None:
        delta_g = actual_delta_g(reaction, concentrations)
    if delta_g > FORWARD_BLOCK_DELTA_G:
        return 0.0
    saturation = limiting_saturation(reaction.substrates, reaction.km, concentrations)
    rate = reaction.vmax * enzyme_concentration * saturation * reaction.reaction_efficiency
    if delta_g > 0.0:
        rate *= _safe_exp(-delta_g / rt(reaction.temperature))
    return max(0.0, rate)


def reverse_rate(
    reaction: Reaction,
    concentrations: Mapping[str, float],
    enzyme_concentration: float,
    delta_g: float | None = None,
) -> float:
    if reaction.is_irreversible or enzyme_concentration <= 0.0:
        return 0.0
    if reaction.is_source or reaction.is_sink:
        return 0.0
    if delta_g is None:
        delta_g = actual_delta_g(reaction, concentrations)
    if delta_g < REVERSE_BLOCK_DELTA_G:
        return 0.0
    saturation = limiting_saturation(reaction.products, reaction.km, concentrations)
    rate = reverse_vmax(reaction) * enzyme_concentration * saturation * reaction.reaction_efficiency
    if delta_g < 0.0:
        rate *= _safe_exp(delta_g / rt(reaction.temperature))
    return max(0.0, rate)


def energy_partition(delta_g: float, net_rate: float, efficiency: float) -> Tuple[float, float]:
    """Split ``|dG| * |net|`` into useful work and heat."""

    if abs(net_rate) < NEGLIGIBLE_RATE:
        return 0.0, 0.0
    efficiency = min(1.0, max(0.0, efficiency))
    total = abs(delta_g) * abs(net_rate)
    return total * efficiency, total * (1.0 - efficiency)


def calculate_reaction_rates(
    reaction: Reaction,
    concentrations: Mapping[str, float],
    enzyme_concentration: float,
) -> ReactionRates:
    delta_g = actual_delta_g(reaction, concentrations)
    keq = equilibrium_constant(reaction.delta_g, reaction.temperature)
    forward = forward_rate(reaction, concentrations, enzyme_concentration, delta_g)
    reverse = reverse_rate(reaction, concentrations, enzyme_concentration, delta_g)
    useful_work, heat = energy_partition(delta_g, forward - reverse, reaction.reaction_efficiency)
    return ReactionRates(
        reaction_id=reaction.id,
        forward=forward,
        reverse=reverse,
        delta_g_actual=delta_g,
        keq=keq,
        useful_work=useful_work,
        heat=heat,
    )


def update_reaction_state(
    reaction: Reaction,
    concentrations: Mapping[str, float],
    enzyme_concentration: float,
) -> ReactionRates:
    """Compute rates and store them on the reaction's runtime fields."""

    rates = calculate_reaction_rates(reaction, concentrations, enzyme_concentration)
    reaction.current_forward_rate = rates.forward
    reaction.current_reverse_rate = rates.reverse
    reaction.current_delta_g_actual = rates.delta_g_actual
    reaction.current_keq = rates.keq
    reaction.current_useful_work = rates.useful_work
    reaction.current_heat_generated = rates.heat
    return rates


__all__ = [
    "FORWARD_BLOCK_DELTA_G",
    "GAS_CONSTANT",
    "REVERSE_BLOCK_DELTA_G",
    "ReactionRates",
    "actual_delta_g",
    "calculate_reaction_rates",
    "energy_partition",
    "equilibrium_constant",
    "forward_rate",
    "limiting_saturation",
    "reaction_quotient",
    "reverse_rate",
    "reverse_vmax",
    "rt",
    "update_reaction_state",
]

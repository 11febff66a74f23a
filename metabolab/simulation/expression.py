"""Gene expression: regulator occupancy to enzyme synthesis rate."""

from __future__ import annotations

from typing import Mapping

from .entities import Gene, RegulatoryElement


def activator_fold(element: RegulatoryElement, concentrations: Mapping[str, float]) -> float:
    occupancy = element.occupancy(concentrations.get(element.molecule_name, 0.0))
    return 1.0 + (element.max_fold_change - 1.0) * occupancy


def repressor_fold(element: RegulatoryElement, concentrations: Mapping[str, float]) -> float:
    occupancy = element.occupancy(concentrations.get(element.molecule_name, 0.0))
    return 1.0 / max(1.0 + (element.max_fold_change - 1.0) * occupancy, 1e-9)


def fold_change(gene: Gene, concentrations: Mapping[str, float]) -> float:
    """Product of every activator and repressor contribution (1.0 if none)."""

    fold = 1.0
    for element in gene.activators:
        fold *= activator_fold(element, concentrations)
    for element in gene.repressors:
        fold *= repressor_fold(element, concentrations)
    return fold


def expression_rate(gene: Gene, concentrations: Mapping[str, float]) -> float:
    """Synthesis rate in mM/s; zero for an inactive gene."""

    if not gene.is_active:
        return 0.0
    return max(0.0, gene.basal_rate * fold_change(gene, concentrations))


def update_gene_state(gene: Gene, concentrations: Mapping[str, float]) -> float:
    gene.current_fold_change = fold_change(gene, concentrations)
    gene.current_expression_rate = expression_rate(gene, concentrations)
    return gene.current_expression_rate


__all__ = ["activator_fold", "expression_rate", "fold_change", "repressor_fold", "update_gene_state"]

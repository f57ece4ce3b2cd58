"""
Biomarker Catalog

Static reference data for the baseline score: which biomarkers are
scored, in which tier, with what target weight, and how composites and
substitutions resolve.

The catalog is validated once at import.  Any inconsistency (unknown
metric id, duplicate entry, a definition with nothing to resolve a rank
from, tier weights that do not add up to the fixed denominators) raises
``CatalogError`` there rather than surfacing per scoring invocation.

Usage:
    from healthscore.core.scoring.catalog import CATALOG

    CATALOG.by_tier(Tier.A)
    CATALOG.definition_for(MetricId.HBA1C)
"""
from __future__ import annotations

from types import MappingProxyType
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from healthscore.utils import CatalogError, get_logger
from .base import CompositionRule, DerivedRatio, Tier, TierDefinition
from .biomarker_ids import KNOWN_METRIC_IDS, MetricId

logger = get_logger(__name__)

# ── Fixed tier denominators ──────────────────────────────────────────────────
ORIGINAL_TIER_TOTALS: Mapping[Tier, int] = MappingProxyType({
    Tier.A: 600,
    Tier.B: 240,
    Tier.C: 160,
})
TOTAL_ORIGINAL_SCORE = sum(ORIGINAL_TIER_TOTALS.values())

# Neutrophil ÷ lymphocyte ratio.  Non-monotonic: both extremes are
# penalised, with the single best band at 0.70–0.75.
NLR_RATIO = DerivedRatio(
    metric_id=MetricId.NLR,
    numerator_id=MetricId.NEUTROPHILS,
    denominator_id=MetricId.LYMPHOCYTES,
    bands=(
        (3.51, 1),
        (2.01, 2),
        (1.25, 3),
        (0.76, 4),
        (0.70, 5),
        (0.50, 2),
    ),
    floor_rank=1,
)

_S = CompositionRule.SUBSTITUTE
_L = CompositionRule.LOWEST

TIER_DEFINITIONS: Tuple[TierDefinition, ...] = (
    # ── Tier A (600) ─────────────────────────────────────────────────────
    TierDefinition("Haemoglobin A1C (HbA1C)", Tier.A, 60, MetricId.HBA1C),
    TierDefinition("Insulin", Tier.A, 60, "",
                   (MetricId.FASTING_INSULIN, MetricId.PP_INSULIN), _L),
    TierDefinition("Non-HDL Cholesterol", Tier.A, 60, MetricId.NON_HDL),
    TierDefinition("Body Fat %", Tier.A, 60, MetricId.BODY_FAT, (MetricId.BMI,), _S),
    TierDefinition("VO2 Max", Tier.A, 60, MetricId.VO2_MAX),
    TierDefinition("High Sensitivity C-Reactive Protein (hs-CRP)", Tier.A, 50, MetricId.HS_CRP),
    TierDefinition("Gamma-Glutamyl Transferase (GGT)", Tier.A, 50, MetricId.GGT),
    TierDefinition("Thyroid Stimulating Hormone (TSH)", Tier.A, 30, MetricId.TSH),
    TierDefinition("PHQ-2", Tier.A, 30, MetricId.PHQ_2),
    TierDefinition("GAD-2", Tier.A, 30, MetricId.GAD_2),
    TierDefinition("Vitamin D", Tier.A, 40, MetricId.VITAMIN_D),
    TierDefinition("Vitamin B12 (Cobalamin)", Tier.A, 40, MetricId.VITAMIN_B12),
    TierDefinition("Ferritin", Tier.A, 30, MetricId.FERRITIN),

    # ── Tier B (240) ─────────────────────────────────────────────────────
    TierDefinition("Triglycerides (TGL)", Tier.B, 30, MetricId.TRIGLYCERIDES),
    TierDefinition("HDL Cholesterol", Tier.B, 30, MetricId.HDL),
    TierDefinition("Small Dense Low-Density Lipoprotein Cholesterol (sdLDL-C)", Tier.B, 30,
                   MetricId.SMALL_LDL),
    TierDefinition("Homocysteine", Tier.B, 30, MetricId.HOMOCYSTEINE),
    TierDefinition("HOMA-IR", Tier.B, 10, MetricId.HOMA_IR),
    TierDefinition("Uric Acid", Tier.B, 20, MetricId.URIC_ACID),
    TierDefinition("Cortisol", Tier.B, 20, MetricId.CORTISOL),
    TierDefinition("Free Triiodothyronine (FT3)", Tier.B, 30, MetricId.FREE_T3),
    TierDefinition("Free thyroxine (FT4)", Tier.B, 5, MetricId.FREE_T4),
    TierDefinition("Lipoprotein A [LP(A)]", Tier.B, 15, MetricId.LPA),
    TierDefinition("Blood Pressure", Tier.B, 0, "",
                   (MetricId.SYSTOLIC_BP, MetricId.DIASTOLIC_BP), _L),
    TierDefinition("Free Testosterone", Tier.B, 20, MetricId.FREE_TESTOSTERONE,
                   (MetricId.TOTAL_TESTOSTERONE,), _S),

    # ── Tier C (160) ─────────────────────────────────────────────────────
    TierDefinition("Magnesium", Tier.C, 15, MetricId.MAGNESIUM),
    TierDefinition("Serum Zinc", Tier.C, 15, MetricId.SERUM_ZINC, (MetricId.ZINC,), _L),
    TierDefinition("Selenium", Tier.C, 10, MetricId.SELENIUM),
    TierDefinition("Vitamin B combined", Tier.C, 15, "",
                   (MetricId.VITAMIN_B6, MetricId.VITAMIN_B1,
                    MetricId.VITAMIN_B2, MetricId.VITAMIN_B5), _L),
    TierDefinition("Vitamin E", Tier.C, 10, MetricId.VITAMIN_E),
    TierDefinition("Folate", Tier.C, 10, MetricId.FOLATE),
    TierDefinition("Serum Albumin", Tier.C, 10, MetricId.ALBUMIN),
    TierDefinition("Estimated Glomerular Filtration Rate (EGFR)", Tier.C, 10, MetricId.EGFR),
    TierDefinition("Vitamin A (Retinol)", Tier.C, 10, MetricId.VITAMIN_A),
    TierDefinition("Red Cell Distribution Width – Coefficient Of Variation (RDW-CV)", Tier.C, 10,
                   MetricId.RDW_CV),
    TierDefinition("Total WBC", Tier.C, 10, MetricId.WBC, derived_ratio=NLR_RATIO),
    TierDefinition("Total RBC", Tier.C, 10, MetricId.RBC, (MetricId.HAEMOGLOBIN,), _L),
    TierDefinition("Iron", Tier.C, 10, MetricId.IRON),
    TierDefinition("Vitamin B3 (Niacin)", Tier.C, 15, MetricId.VITAMIN_B3),
)


def check_known_ids(ids: Iterable[str], table: str, owner: str) -> None:
    """Raise CatalogError if any id is not a canonical metric id."""
    unknown = sorted(i for i in ids if i not in KNOWN_METRIC_IDS)
    if unknown:
        raise CatalogError(
            f"{owner}: unknown metric id(s) {unknown}",
            table=table,
            details={"owner": owner, "unknown": unknown},
        )


class BiomarkerCatalog:
    """
    Immutable, validated view over the tier definitions.

    Lookups are keyed by stable metric id only.
    """

    def __init__(
        self,
        definitions: Sequence[TierDefinition],
        original_totals: Mapping[Tier, int] = ORIGINAL_TIER_TOTALS,
    ):
        self._definitions: Tuple[TierDefinition, ...] = tuple(definitions)
        self._original_totals = MappingProxyType(dict(original_totals))
        self._validate()

        self._by_primary: Mapping[str, TierDefinition] = MappingProxyType({
            d.metric_id: d for d in self._definitions if d.metric_id
        })
        owner: Dict[str, TierDefinition] = {}
        for d in self._definitions:
            for metric_id in d.contributing_ids:
                owner.setdefault(metric_id, d)
        self._by_any: Mapping[str, TierDefinition] = MappingProxyType(owner)

        logger.debug(
            f"BiomarkerCatalog loaded: {len(self._definitions)} definitions, "
            + ", ".join(f"{t.value}={v}" for t, v in self._original_totals.items())
        )

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def _validate(self) -> None:
        seen_names = set()
        seen_ids = set()
        for d in self._definitions:
            if d.name in seen_names:
                raise CatalogError(f"Duplicate tier definition name: {d.name}", table="tiers")
            seen_names.add(d.name)

            if d.metric_id:
                if d.metric_id in seen_ids:
                    raise CatalogError(
                        f"Duplicate primary metric id {d.metric_id} ({d.name})", table="tiers"
                    )
                seen_ids.add(d.metric_id)

            if d.target_score < 0:
                raise CatalogError(f"{d.name}: negative target score", table="tiers")

            if d.composition != CompositionRule.NONE and not d.related_metric_ids:
                raise CatalogError(
                    f"{d.name}: '{d.composition.value}' rule needs related metric ids",
                    table="tiers",
                )
            if not d.metric_id and d.composition == CompositionRule.NONE:
                raise CatalogError(
                    f"{d.name}: no metric id and no composition rule to resolve a rank",
                    table="tiers",
                )

            ids = list(d.contributing_ids)
            if d.derived_ratio is not None:
                ratio = d.derived_ratio
                ids += [ratio.metric_id, ratio.numerator_id, ratio.denominator_id]
                if not ratio.bands:
                    raise CatalogError(f"{d.name}: derived ratio without bands", table="tiers")
            check_known_ids(ids, table="tiers", owner=d.name)

        sums = {tier: 0 for tier in self._original_totals}
        for d in self._definitions:
            if d.tier not in sums:
                raise CatalogError(f"{d.name}: tier {d.tier.value} has no denominator", table="tiers")
            sums[d.tier] += d.target_score
        mismatched = {
            t.value: (sums[t], total)
            for t, total in self._original_totals.items()
            if sums[t] != total
        }
        if mismatched:
            raise CatalogError(
                f"Tier target scores do not add up to the fixed denominators: {mismatched}",
                table="tiers",
                details={"mismatched": mismatched},
            )

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    @property
    def definitions(self) -> Tuple[TierDefinition, ...]:
        return self._definitions

    @property
    def original_totals(self) -> Mapping[Tier, int]:
        return self._original_totals

    @property
    def total_original_score(self) -> int:
        return sum(self._original_totals.values())

    def by_tier(self, tier: Tier) -> List[TierDefinition]:
        return [d for d in self._definitions if d.tier == tier]

    def definition_for(self, metric_id: str) -> Optional[TierDefinition]:
        """Definition whose primary metric id is ``metric_id``."""
        return self._by_primary.get(metric_id)

    def owner_of(self, metric_id: str) -> Optional[TierDefinition]:
        """First definition that uses ``metric_id`` as primary or related id."""
        return self._by_any.get(metric_id)

    def tier_of(self, metric_id: str) -> Optional[Tier]:
        d = self.owner_of(metric_id)
        return d.tier if d else None

    def is_tiered(self, metric_id: str) -> bool:
        return metric_id in self._by_any

    def names(self) -> List[str]:
        return [d.name for d in self._definitions]

    def referenced_ids(self) -> frozenset:
        """Every metric id the catalog reads, derived ratio ids included."""
        ids = set(self._by_any)
        for d in self._definitions:
            if d.derived_ratio is not None:
                ids.update((d.derived_ratio.metric_id,
                            d.derived_ratio.numerator_id,
                            d.derived_ratio.denominator_id))
        return frozenset(ids)

    def __len__(self) -> int:
        return len(self._definitions)

    def __iter__(self):
        return iter(self._definitions)


CATALOG = BiomarkerCatalog(TIER_DEFINITIONS)

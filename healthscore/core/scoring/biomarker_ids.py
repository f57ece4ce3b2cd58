"""
Canonical Biomarker Identifiers

Stable upstream metric ids.  Every lookup in the scoring engine is keyed
by these ids; display names are carried only for audits and reports.

Prefixes:
    BD  blood panel
    CL  clinical measurement
    DV  device measurement
    PHQ-2 / GAD-2   questionnaire scores
    NLR_CALC        derived in-engine (neutrophils ÷ lymphocytes)
"""
from typing import Dict


class MetricId:
    """Namespace of metric id constants."""
    # ── Blood panel ──────────────────────────────────────────────────────
    APO_B              = "BD10006"
    SGPT               = "BD10001"   # Alanine transaminase (ALT)
    SGOT               = "BD10007"   # Aspartate aminotransferase (AST)
    CORTISOL           = "BD10015"
    EGFR               = "BD10022"
    FASTING_INSULIN    = "BD10024"
    FERRITIN           = "BD10025"
    FOLATE             = "BD10026"
    FREE_TESTOSTERONE  = "BD10027"
    GGT                = "BD10028"
    HAEMOGLOBIN        = "BD10031"
    HBA1C              = "BD10032"
    HS_CRP             = "BD10033"
    HDL                = "BD10034"
    HOMOCYSTEINE       = "BD10035"
    LPA                = "BD10039"
    LDL                = "BD10040"
    LYMPHOCYTES        = "BD10041"
    MAGNESIUM          = "BD10043"
    NEUTROPHILS        = "BD10050"
    NON_HDL            = "BD10052"
    PP_INSULIN         = "BD10060"
    RDW_CV             = "BD10065"
    SELENIUM           = "BD10066"
    ALBUMIN            = "BD10067"
    IRON               = "BD10069"
    SHBG               = "BD10070"
    TSH                = "BD10073"
    RBC                = "BD10079"
    TOTAL_TESTOSTERONE = "BD10080"
    WBC                = "BD10083"
    TRIGLYCERIDES      = "BD10085"
    URIC_ACID          = "BD10089"
    VITAMIN_A          = "BD10091"
    VITAMIN_B1         = "BD10092"
    VITAMIN_B12        = "BD10093"
    VITAMIN_B2         = "BD10094"
    VITAMIN_B3         = "BD10095"
    VITAMIN_B5         = "BD10096"
    VITAMIN_B6         = "BD10097"
    VITAMIN_D          = "BD10100"
    VITAMIN_E          = "BD10101"
    ZINC               = "BD10102"
    IL_6               = "BD10108"
    SERUM_ZINC         = "BD10149"
    HOMA_IR            = "BD10150"
    FREE_T3            = "BD10152"
    FREE_T4            = "BD10153"
    SMALL_LDL          = "BD10154"

    # ── Clinical / device ────────────────────────────────────────────────
    BMI                = "CL10001"
    VO2_MAX            = "CL10005"
    BODY_FAT           = "DV10001"
    DIASTOLIC_BP       = "DV10003"
    SYSTOLIC_BP        = "DV10007"

    # ── Questionnaires ───────────────────────────────────────────────────
    GAD_2              = "GAD-2"
    PHQ_2              = "PHQ-2"

    # ── Derived ──────────────────────────────────────────────────────────
    NLR                = "NLR_CALC"


# Display names as reported by the upstream source.
METRIC_NAMES: Dict[str, str] = {
    MetricId.APO_B: "Apolipoprotein B (APO-B)",
    MetricId.SGPT: "Alanine Transaminase (SGPT)",
    MetricId.SGOT: "Aspartate Aminotransferase (SGOT)",
    MetricId.CORTISOL: "Cortisol",
    MetricId.EGFR: "Estimated Glomerular Filtration Rate (EGFR)",
    MetricId.FASTING_INSULIN: "Fasting Insulin",
    MetricId.FERRITIN: "Ferritin",
    MetricId.FOLATE: "Folate",
    MetricId.FREE_TESTOSTERONE: "Free Testosterone",
    MetricId.GGT: "Gamma-Glutamyl Transferase (GGT)",
    MetricId.HAEMOGLOBIN: "Haemoglobin",
    MetricId.HBA1C: "Haemoglobin A1C (HbA1C)",
    MetricId.HS_CRP: "High Sensitivity C-Reactive Protein (hs-CRP)",
    MetricId.HDL: "HDL Cholesterol",
    MetricId.HOMOCYSTEINE: "Homocysteine",
    MetricId.LPA: "Lipoprotein A [LP(A)]",
    MetricId.LDL: "LDL Cholesterol",
    MetricId.LYMPHOCYTES: "Lymphocytes",
    MetricId.MAGNESIUM: "Magnesium",
    MetricId.NEUTROPHILS: "Neutrophils",
    MetricId.NON_HDL: "Non-HDL Cholesterol",
    MetricId.PP_INSULIN: "Postprandial (PP) Insulin",
    MetricId.RDW_CV: "Red Cell Distribution Width – Coefficient Of Variation (RDW-CV)",
    MetricId.SELENIUM: "Selenium",
    MetricId.ALBUMIN: "Serum Albumin",
    MetricId.IRON: "Iron",
    MetricId.SHBG: "Sex Hormone Binding Globulin (SHBG)",
    MetricId.TSH: "Thyroid Stimulating Hormone (TSH)",
    MetricId.RBC: "Total RBC",
    MetricId.TOTAL_TESTOSTERONE: "Total Testosterone",
    MetricId.WBC: "Total WBC",
    MetricId.TRIGLYCERIDES: "Triglycerides (TGL)",
    MetricId.URIC_ACID: "Uric Acid",
    MetricId.VITAMIN_A: "Vitamin A (Retinol)",
    MetricId.VITAMIN_B1: "Vitamin B1 (Thiamine)",
    MetricId.VITAMIN_B12: "Vitamin B12 (Cobalamin)",
    MetricId.VITAMIN_B2: "Vitamin B2 (Riboflavin)",
    MetricId.VITAMIN_B3: "Vitamin B3 (Niacin)",
    MetricId.VITAMIN_B5: "Vitamin B5 (Pantothenic Acid)",
    MetricId.VITAMIN_B6: "Vitamin B6 (Pyridoxine)",
    MetricId.VITAMIN_D: "Vitamin D",
    MetricId.VITAMIN_E: "Vitamin E",
    MetricId.ZINC: "Zinc",
    MetricId.IL_6: "IL-6",
    MetricId.SERUM_ZINC: "Serum Zinc",
    MetricId.HOMA_IR: "HOMA-IR",
    MetricId.FREE_T3: "Free Triiodothyronine (FT3)",
    MetricId.FREE_T4: "Free thyroxine (FT4)",
    MetricId.SMALL_LDL: "Small Dense Low-Density Lipoprotein Cholesterol (sdLDL-C)",
    MetricId.BMI: "Body Mass Index (BMI)",
    MetricId.VO2_MAX: "VO2 Max",
    MetricId.BODY_FAT: "Body Fat %",
    MetricId.DIASTOLIC_BP: "Diastolic Blood Pressure",
    MetricId.SYSTOLIC_BP: "Systolic Blood Pressure",
    MetricId.GAD_2: "GAD-2",
    MetricId.PHQ_2: "PHQ-2",
    MetricId.NLR: "Neutrophil-Lymphocyte Ratio (NLR)",
}

KNOWN_METRIC_IDS = frozenset(METRIC_NAMES)


def display_name(metric_id: str) -> str:
    """Upstream display name for a metric id (the id itself if unknown)."""
    return METRIC_NAMES.get(metric_id, metric_id)

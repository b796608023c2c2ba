"""
Body Fat Calculation Service
==============================
Implements the Jackson & Pollock 3-site and 7-site skinfold methods for
estimating body fat percentage.

Both methods sum the caliper measurements (in mm) taken at fixed anatomical
sites, derive body density from a sex-specific quadratic regression, and then
convert body density to body fat percentage with the Siri equation.

3-SITE FORMULA (Jackson & Pollock, 1978 / 1980):
  Men   (chest, abdomen, thigh):
    BD = 1.10938 - (0.0008267 × S) + (0.0000016 × S²) - (0.0002574 × Age)
  Women (triceps, suprailiac, thigh):
    BD = 1.0994921 - (0.0009929 × S) + (0.0000023 × S²) - (0.0001392 × Age)

7-SITE FORMULA (chest, midaxillary, triceps, subscapular, abdomen, suprailiac, thigh):
  Men:
    BD = 1.112 - (0.00043499 × S) + (0.00000055 × S²) - (0.00028826 × Age)
  Women:
    BD = 1.0970 - (0.00046971 × S) + (0.00000056 × S²) - (0.00012828 × Age)

SIRI EQUATION (1961):
  Body Fat % = (495 / Body Density) - 450

These functions do not validate, round or clamp. Callers (the measurement
workflows) validate inputs beforehand and reject non-finite, non-positive or
>= 100 results afterwards. A body density of exactly zero raises
ZeroDivisionError.
"""

import logging

from bodyfat_tracker.enums import Sex

logger = logging.getLogger(__name__)


def siri_percentage(body_density: float) -> float:
    """
    Convert body density to body fat percentage using the Siri equation.

    Formula:
        Body Fat % = (495 / Body Density) - 450

    Reference:
        Siri, W.E. (1961). Body composition from fluid spaces and density:
        Analysis of methods. In J. Brozek & A. Henschel (Eds.), Techniques for
        Measuring Body Composition (pp. 223-224). Washington, DC: National
        Academy of Sciences.
    """
    return 495.0 / body_density - 450.0


def body_density_3_site(sum_of_skinfolds_mm: float, age_years: int, sex: Sex) -> float:
    """
    Body density from the Jackson & Pollock 3-site regression.

    Args:
        sum_of_skinfolds_mm: Sum of the three skinfolds in millimeters
        age_years: Age of the subject in years
        sex: Selects the male or female coefficients

    Returns:
        Body density in g/cm³ (typically between 1.0 and 1.1)
    """
    s = sum_of_skinfolds_mm
    s_squared = s * s
    if sex is Sex.MALE:
        return 1.10938 - 0.0008267 * s + 0.0000016 * s_squared - 0.0002574 * age_years
    if sex is Sex.FEMALE:
        return 1.0994921 - 0.0009929 * s + 0.0000023 * s_squared - 0.0001392 * age_years
    raise ValueError(f"Unsupported sex: {sex!r}")


def body_density_7_site(sum_of_skinfolds_mm: float, age_years: int, sex: Sex) -> float:
    """
    Body density from the Jackson & Pollock 7-site regression.

    Reference:
        Jackson, A.S. & Pollock, M.L. (1978). Generalized equations for predicting
        body density of men. British Journal of Nutrition, 40, 497-504.
        Jackson, A.S., Pollock, M.L. & Ward, A. (1980). Generalized equations for
        predicting body density of women. Medicine and Science in Sports and
        Exercise, 12, 175-182.
    """
    s = sum_of_skinfolds_mm
    s_squared = s * s
    if sex is Sex.MALE:
        return 1.112 - 0.00043499 * s + 0.00000055 * s_squared - 0.00028826 * age_years
    if sex is Sex.FEMALE:
        return 1.0970 - 0.00046971 * s + 0.00000056 * s_squared - 0.00012828 * age_years
    raise ValueError(f"Unsupported sex: {sex!r}")


def calculate_3_site(
    skinfold1: float,
    skinfold2: float,
    skinfold3: float,
    age_years: int,
    sex: Sex,
) -> float:
    """
    Complete 3-site body fat calculation.

    The three skinfolds are positional: chest/abdomen/thigh for men and
    triceps/suprailiac/thigh for women. Only their sum enters the formula.

    Returns:
        Body fat percentage, unrounded (e.g., 18.4 means 18.4%)
    """
    sum_of_skinfolds = skinfold1 + skinfold2 + skinfold3
    body_density = body_density_3_site(sum_of_skinfolds, age_years, sex)
    fat_percent = siri_percentage(body_density)

    logger.debug(
        f"3-site calculation: sex={sex.value}, sum_skinfolds={sum_of_skinfolds}mm, "
        f"age={age_years}, body_density={body_density:.6f} -> fat={fat_percent:.2f}%"
    )
    return fat_percent


def calculate_7_site(
    chest: float,
    midaxillary: float,
    triceps: float,
    subscapular: float,
    abdomen: float,
    suprailiac: float,
    thigh: float,
    age_years: int,
    sex: Sex,
) -> float:
    """
    Complete 7-site body fat calculation.

    Args:
        chest: Chest skinfold in mm
        midaxillary: Mid-axillary skinfold in mm
        triceps: Triceps skinfold in mm
        subscapular: Subscapular skinfold in mm
        abdomen: Abdominal skinfold in mm
        suprailiac: Suprailiac skinfold in mm
        thigh: Thigh skinfold in mm
        age_years: Age of the subject in years
        sex: Selects the male or female coefficients

    Returns:
        Body fat percentage, unrounded
    """
    sum_of_skinfolds = (
        chest + midaxillary + triceps + subscapular
        + abdomen + suprailiac + thigh
    )
    body_density = body_density_7_site(sum_of_skinfolds, age_years, sex)
    fat_percent = siri_percentage(body_density)

    logger.debug(
        f"7-site calculation: sex={sex.value}, sum_skinfolds={sum_of_skinfolds}mm, "
        f"age={age_years}, body_density={body_density:.6f} -> fat={fat_percent:.2f}%"
    )
    return fat_percent

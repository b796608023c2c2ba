"""
Skinfold protocol descriptors.

A MeasurementWorkflow is generic; what differs between the 3-site and the
7-site scheme is captured here: how many sites, what they are called for each
sex, which method tag the resulting record carries, and which calculator
entry point turns the parsed values into a percentage.
"""

from collections.abc import Callable, Sequence
from dataclasses import dataclass

from bodyfat_tracker.enums import MeasurementMethod, Protocol, Sex
from bodyfat_tracker.services.body_fat import calculate_3_site, calculate_7_site

# (skinfolds in site order, age, sex) -> percentage
Estimator = Callable[[Sequence[float], int, Sex], float]


@dataclass(frozen=True)
class ProtocolDescriptor:
    protocol: Protocol
    method: MeasurementMethod
    site_labels: dict[Sex, tuple[str, ...]]
    estimate: Estimator

    @property
    def site_count(self) -> int:
        return len(self.site_labels[Sex.MALE])

    def labels_for(self, sex: Sex) -> tuple[str, ...]:
        return self.site_labels[sex]


def _estimate_3_site(values: Sequence[float], age: int, sex: Sex) -> float:
    s1, s2, s3 = values
    return calculate_3_site(s1, s2, s3, age, sex)


def _estimate_7_site(values: Sequence[float], age: int, sex: Sex) -> float:
    chest, midaxillary, triceps, subscapular, abdomen, suprailiac, thigh = values
    return calculate_7_site(
        chest=chest,
        midaxillary=midaxillary,
        triceps=triceps,
        subscapular=subscapular,
        abdomen=abdomen,
        suprailiac=suprailiac,
        thigh=thigh,
        age_years=age,
        sex=sex,
    )


_SEVEN_SITES = (
    "chest", "midaxillary", "triceps", "subscapular", "abdomen", "suprailiac", "thigh",
)

THREE_SITE_PROTOCOL = ProtocolDescriptor(
    protocol=Protocol.THREE_SITE,
    method=MeasurementMethod.THREE_POINTS,
    site_labels={
        Sex.MALE: ("chest", "abdomen", "thigh"),
        Sex.FEMALE: ("triceps", "suprailiac", "thigh"),
    },
    estimate=_estimate_3_site,
)

SEVEN_SITE_PROTOCOL = ProtocolDescriptor(
    protocol=Protocol.SEVEN_SITE,
    method=MeasurementMethod.SEVEN_POINTS,
    site_labels={Sex.MALE: _SEVEN_SITES, Sex.FEMALE: _SEVEN_SITES},
    estimate=_estimate_7_site,
)

_PROTOCOLS = {
    Protocol.THREE_SITE: THREE_SITE_PROTOCOL,
    Protocol.SEVEN_SITE: SEVEN_SITE_PROTOCOL,
}


def get_protocol(protocol: Protocol) -> ProtocolDescriptor:
    return _PROTOCOLS[protocol]

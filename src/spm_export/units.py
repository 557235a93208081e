"""SI value formatting for labels (value, unit, decade -> precision + string)."""

from dataclasses import dataclass

SI_PREFIXES = {
    -24: "y",
    -21: "z",
    -18: "a",
    -15: "f",
    -12: "p",
    -9: "n",
    -6: "µ",
    -3: "m",
    0: "",
    3: "k",
    6: "M",
    9: "G",
    12: "T",
    15: "P",
    18: "E",
    21: "Z",
    24: "Y",
}


@dataclass(frozen=True)
class ValueFormat:
    magnitude: float
    precision: int
    units: str

    def format(self, value: float) -> str:
        text = "%.*f" % (self.precision, value / self.magnitude)
        if self.units:
            return "%s %s" % (text, self.units)
        return text


def format_for_power10(unit: str, power10: int, precision: int = 0) -> ValueFormat:
    """Value format showing values in units of 10**power10.

    Decades with an SI prefix are written as prefix + unit (nm, µm, ...).
    Other decades, and unitless values, get an explicit ×10^n factor.
    """
    unit = unit or ""
    magnitude = 10.0 ** power10
    if power10 == 0:
        return ValueFormat(magnitude, precision, unit)
    if unit and power10 in SI_PREFIXES:
        return ValueFormat(magnitude, precision, SI_PREFIXES[power10] + unit)
    factor = "×10^%d" % power10
    return ValueFormat(magnitude, precision, ("%s %s" % (factor, unit)).strip())

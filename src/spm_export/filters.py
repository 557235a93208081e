"""
Filter-chain mini-language.

A filter spec is a ';'-separated list of tokens applied in order:

    pc          plane level
    melc        median line correction
    sr          scar removal
    poly:x[,y]  polynomial levelling, column degree x, row degree y (y defaults to x)
    mean:x      mean filter of x pixels
    any:name    run the process module `name`

Malformed or failing tokens are reported and skipped; the rest of the chain
still runs and the chain's `ok` flag turns False.
"""

import logging
import re
from dataclasses import dataclass
from typing import List, Optional, Tuple, Union

from .config import DEFAULT_FILTERS, FILTER_DELIMITER
from .data import DataField
from .errors import EngineError

log = logging.getLogger(__name__)

POLY_MAX_DEGREE = 12
MASK_IGNORE = 0
POLYLEVEL_SETTINGS = "/module/polylevel/"
PARAM_FILTERS = ("poly", "mean", "any")
PLAIN_FILTERS = ("pc", "melc", "sr")

_INT = re.compile(r"^[+-]?\d+$")


@dataclass(frozen=True)
class PlaneCorrect:
    module = "level"
    description = "Plane level"


@dataclass(frozen=True)
class MedianLineCorrect:
    module = "line_correct_median"
    description = "Median line correct"


@dataclass(frozen=True)
class ScarRemove:
    module = "scars_remove"
    description = "Scars remove"


@dataclass(frozen=True)
class PolyLevel:
    col_degree: int
    row_degree: int
    module = "polylevel"

    @property
    def description(self) -> str:
        return "Polynomial level: (%d,%d)" % (self.col_degree, self.row_degree)


@dataclass(frozen=True)
class MeanFilter:
    radius: int

    @property
    def description(self) -> str:
        return "Mean filter: (%d pixel)" % self.radius


@dataclass(frozen=True)
class Invoke:
    name: str

    @property
    def description(self) -> str:
        return self.name


@dataclass(frozen=True)
class Empty:
    pass


FilterOp = Union[PlaneCorrect, MedianLineCorrect, ScarRemove, PolyLevel, MeanFilter, Invoke, Empty]


@dataclass(frozen=True)
class Rejected:
    token: str
    reason: str


@dataclass(frozen=True)
class Applied:
    op: FilterOp
    description: str


Outcome = Union[Applied, Rejected]


@dataclass(frozen=True)
class FilterChainResult:
    outcomes: Tuple[Outcome, ...] = ()

    @property
    def descriptions(self) -> List[str]:
        return [o.description for o in self.outcomes if isinstance(o, Applied)]

    @property
    def rejected(self) -> List[Rejected]:
        return [o for o in self.outcomes if isinstance(o, Rejected)]

    @property
    def ok(self) -> bool:
        return all(isinstance(o, Applied) for o in self.outcomes)


def _parse_int(text: str) -> Optional[int]:
    text = text.strip()
    if not _INT.match(text):
        return None
    return int(text)


def parse_token(token: str) -> Union[FilterOp, Rejected]:
    """Parse one filter token into an op, or a Rejected with the reason."""
    token = token.strip()
    if token == "":
        return Empty()

    name, colon, arg = token.partition(":")
    if not colon:
        if name == "pc":
            return PlaneCorrect()
        if name == "melc":
            return MedianLineCorrect()
        if name == "sr":
            return ScarRemove()
        if name in PARAM_FILTERS:
            return Rejected(token, "missing parameters for %s-filter" % name)
        return Rejected(token, "unknown filter")

    if name not in PARAM_FILTERS:
        if name in PLAIN_FILTERS:
            return Rejected(token, "filter '%s' takes no parameters" % name)
        return Rejected(token, "unknown filter")
    if ":" in arg:
        return Rejected(token, "more than one ':'")

    if name == "poly":
        if arg.count(",") > 1:
            return Rejected(token, "more than one ','")
        x_text, comma, y_text = arg.partition(",")
        x = _parse_int(x_text)
        y = _parse_int(y_text) if comma else x
        if x is None or y is None:
            return Rejected(token, "illegal poly degrees")
        if x <= 0 or y <= 0:
            return Rejected(token, "poly degrees must be positive")
        return PolyLevel(x, y)

    if name == "mean":
        radius = _parse_int(arg)
        if radius is None:
            return Rejected(token, "illegal mean-filter value")
        if radius <= 0:
            return Rejected(token, "mean-filter value must be positive")
        return MeanFilter(radius)

    if not arg or "," in arg:
        return Rejected(token, "illegal any-filter definition")
    return Invoke(arg)


def _recognised(token: str) -> bool:
    name = token.strip().partition(":")[0]
    return name in PLAIN_FILTERS or name in PARAM_FILTERS


def parse_filter_spec(spec: Optional[str], logger: Optional[logging.Logger] = None) -> List[Union[FilterOp, Rejected]]:
    """Split `spec` into ordered ops/rejections.

    An empty spec, or one where no token names a known filter, is replaced
    by the default chain.
    """
    logger = logger or log
    if spec is None or not spec.strip():
        return parse_filter_spec(DEFAULT_FILTERS, logger)

    tokens = spec.split(FILTER_DELIMITER)
    if not any(_recognised(t) for t in tokens):
        logger.warning("'%s' is no valid filterlist, using defaults.", spec)
        tokens = DEFAULT_FILTERS.split(FILTER_DELIMITER)
    return [parse_token(t) for t in tokens]


def _poly_settings(op: PolyLevel) -> dict:
    return {
        POLYLEVEL_SETTINGS + "col_degree": op.col_degree,
        POLYLEVEL_SETTINGS + "row_degree": op.row_degree,
        POLYLEVEL_SETTINGS + "max_degree": POLY_MAX_DEGREE,
        POLYLEVEL_SETTINGS + "masking": MASK_IGNORE,
        POLYLEVEL_SETTINGS + "do_extract": False,
        POLYLEVEL_SETTINGS + "same_degree": False,
        POLYLEVEL_SETTINGS + "independent": True,
    }


def apply_op(op: FilterOp, session, field: DataField) -> Outcome:
    """Run one op on `field` through the session's engine."""
    engine = session.engine
    try:
        match op:
            case PlaneCorrect() | MedianLineCorrect() | ScarRemove():
                engine.run(op.module, field, session.settings)
            case PolyLevel():
                session.settings.update(_poly_settings(op))
                engine.run(op.module, field, session.settings)
            case MeanFilter(radius=radius):
                engine.mean_filter(field, radius)
            case Invoke(name=name):
                if not engine.exists(name):
                    return Rejected(name, "module '%s' could not be executed" % name)
                engine.run(name, field, session.settings)
    except EngineError as exc:
        return Rejected(op.description, str(exc))
    return Applied(op, op.description)


def run_filter_chain(
    spec: Optional[str],
    session,
    channel_id: int,
    logger: Optional[logging.Logger] = None,
) -> FilterChainResult:
    """Parse `spec` and apply it, in order, to one channel of the session."""
    logger = logger or log
    field = session.field(channel_id)
    outcomes: List[Outcome] = []
    for item in parse_filter_spec(spec, logger):
        if isinstance(item, Empty):
            continue
        outcome = item if isinstance(item, Rejected) else apply_op(item, session, field)
        if isinstance(outcome, Rejected):
            logger.warning("Filter '%s' ignored: %s.", outcome.token, outcome.reason)
        outcomes.append(outcome)
    return FilterChainResult(tuple(outcomes))

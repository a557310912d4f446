"""
Line classification for DSSAT text files

Each raw line is classified on its own; readers re-classify every line
instead of remembering a block mode, so a new marker always wins.
"""
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional

logger = logging.getLogger(__name__)

BLOCK_BREAK_WORDS = ("MODEL", "SUMMARY", "SEASONAL")


class LineKind(Enum):
    COMMENT = "comment"
    EXPERIMENT = "experiment"
    RUN = "run"
    TREATMENT = "treatment"
    HEADER = "header"
    SECTION = "section"
    DATA = "data"


@dataclass
class LineInfo:
    """Classification result with the values parsed from the line."""
    kind: LineKind
    text: str
    headers: List[str] = field(default_factory=list)
    section: Optional[str] = None
    experiment: Optional[str] = None
    run: Optional[str] = None
    treatment: Optional[str] = None
    treatment_name: Optional[str] = None


def text_after_colon(line: str) -> str:
    """Text between the first and second colon, trimmed."""
    parts = line.split(":")
    return parts[1].strip() if len(parts) > 1 else ""


def parse_header(line: str) -> List[str]:
    """Column names of an '@' header line."""
    return line.strip()[1:].split()


def _parse_run(line: str) -> Optional[str]:
    run_part = line.split(":")[0].replace("*RUN", "", 1).split()
    if run_part and run_part[0].isdigit() and int(run_part[0]) > 0:
        return run_part[0]
    return None


def _parse_treatment(line: str) -> Optional[LineInfo]:
    words = line.split()
    if len(words) < 2:
        return None
    trt = words[1].replace(":", "")
    if not trt.isdigit():
        return None

    if ":" in line:
        after_colon = text_after_colon(line)
        name_words = after_colon.split()
        # Trailing token is the model/crop tag
        tname = " ".join(name_words[:-1]) if len(name_words) > 1 else after_colon
    else:
        tname = f"Treatment {trt}"
    return LineInfo(LineKind.TREATMENT, line, treatment=trt, treatment_name=tname)


def classify_line(raw_line: str) -> LineInfo:
    """Classify one raw (untrimmed) line of a DSSAT file."""
    line = raw_line.strip()

    if not line or line.startswith(("!", "#")):
        return LineInfo(LineKind.COMMENT, line)

    if "EXPERIMENT" in line and ":" in line:
        after_colon = line.split(":", 1)[1].split()
        return LineInfo(
            LineKind.EXPERIMENT, line,
            experiment=after_colon[0] if after_colon else None,
        )

    if line.startswith("*RUN"):
        return LineInfo(LineKind.RUN, line, run=_parse_run(line))

    if line.upper().startswith("TREATMENT"):
        info = _parse_treatment(line)
        if info is not None:
            return info
        return LineInfo(LineKind.TREATMENT, line)

    if line.startswith("@"):
        return LineInfo(LineKind.HEADER, line, headers=parse_header(line))

    if line.startswith("*"):
        return LineInfo(LineKind.SECTION, line, section=line[1:].strip())

    return LineInfo(LineKind.DATA, line)


def is_block_break(line: str) -> bool:
    """Data-looking lines that end a data block (MODEL/SUMMARY/SEASONAL banners)."""
    upper = line.upper()
    return any(word in upper for word in BLOCK_BREAK_WORDS)


@dataclass
class ParseContext:
    """Experiment/treatment/run context tracked while scanning a file."""
    experiment: str = "DEFAULT"
    treatment: str = "1"
    run: str = "1"
    section: Optional[str] = None
    treatment_names: Dict[str, str] = field(default_factory=dict)

    def update(self, info: LineInfo) -> None:
        if info.kind == LineKind.EXPERIMENT and info.experiment:
            self.experiment = info.experiment
        elif info.kind == LineKind.RUN and info.run:
            self.run = info.run
        elif info.kind == LineKind.TREATMENT and info.treatment:
            self.treatment = info.treatment
            self.treatment_names[info.treatment] = info.treatment_name
        elif info.kind == LineKind.SECTION:
            self.section = info.section

    def treatment_name(self, treatment: Optional[str] = None) -> str:
        trt = treatment or self.treatment
        return self.treatment_names.get(trt, f"Treatment {trt}")

"""
LexGate - Draft Flag Policy

Flags point a lawyer at something to check. They name the next action
("confirm the date of the last repayment") and never a legal outcome
("discharge will be denied"). Conclusions are the lawyer's alone.

The blocklist is configured through FLAG_CONCLUSION_BLOCKLIST.
"""

from typing import Dict, Iterable, List, Optional

from lexgate.config import settings
from lexgate.schemas.draft import Flag
from lexgate.utils.error_handling import FlagPolicyException


def find_conclusion_phrases(text: str, phrases: Optional[Iterable[str]] = None) -> List[str]:
    """Blocklisted phrases contained in text (case-insensitive)."""
    if phrases is None:
        phrases = settings.flag_conclusion_phrases
    lowered = text.lower()
    return [phrase for phrase in phrases if phrase and phrase.lower() in lowered]


def lint_flags(flags: Iterable[Flag], phrases: Optional[Iterable[str]] = None) -> List[Dict[str, object]]:
    """
    Check every flag's message and action.

    Returns:
        One violation per offending flag: index, kind, matched phrases
    """
    phrase_list = list(phrases) if phrases is not None else settings.flag_conclusion_phrases
    violations = []
    for index, flag in enumerate(flags):
        matched = find_conclusion_phrases(flag.message, phrase_list)
        matched += [p for p in find_conclusion_phrases(flag.action, phrase_list) if p not in matched]
        if matched:
            violations.append({"index": index, "kind": flag.kind, "phrases": matched})
    return violations


def enforce_flag_policy(flags: Iterable[Flag], phrases: Optional[Iterable[str]] = None) -> None:
    """Raise FlagPolicyException when any flag states a conclusion."""
    violations = lint_flags(flags, phrases)
    if violations:
        raise FlagPolicyException(violations)

"""
Translation orchestration for one (document, language) pair.

Steps:
1. Classify source units against the existing translation.
2. Nothing changed: return the existing values and report a skip.
3. Dispatch one gateway call per changed unit (per subgroup for split units)
   in fixed-size batches of at most ``concurrency`` calls.
4. Merge replies by member identity into address paths. A unit with any
   failed subgroup is reported as failed and keeps its source values; other
   units are unaffected.
"""

import asyncio
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from speranto.core.change_detector import classify
from speranto.core.exceptions import ConnectivityError
from speranto.core.translator import Translator
from speranto.core.units import SplitUnit, TranslationResult, TranslationUnit
from speranto.utils.unified_logger import debug, warning

# Unit outcome names passed to on_unit_done
UNIT_TRANSLATED = "translated"
UNIT_REUSED = "reused"
UNIT_PASSTHROUGH = "passthrough"
UNIT_FAILED = "failed"


@dataclass
class OrchestrationResult:
    """
    Outcome of one orchestration run.

    Attributes:
        values: Value for every member path of every source unit
        translated_units: Keys of units translated in this run
        reused_units: Keys of units whose existing translation was kept
        failed_units: Key -> error for units whose request failed
        skipped: Nothing changed, no request was made
    """
    values: TranslationResult = field(default_factory=dict)
    translated_units: List[str] = field(default_factory=list)
    reused_units: List[str] = field(default_factory=list)
    failed_units: Dict[str, Exception] = field(default_factory=dict)
    skipped: bool = False

    @property
    def succeeded(self) -> bool:
        return not self.failed_units

    @property
    def should_write(self) -> bool:
        return self.succeeded and not self.skipped


def _source_values(unit: TranslationUnit, values: TranslationResult) -> None:
    for member in unit.members:
        values[member.path] = member.value


def _reuse_values(unit: TranslationUnit, existing: TranslationUnit, values: TranslationResult) -> None:
    previous = {m.identity: m.value for m in existing.members}
    for member in unit.members:
        values[member.path] = previous.get(member.identity, member.value)


class Orchestrator:
    """Runs change detection and batched dispatch for one document and language."""

    def __init__(self, translator: Translator, concurrency: int = 1,
                 on_unit_done: Optional[Callable[[str, str], None]] = None):
        self.translator = translator
        self.concurrency = max(1, concurrency)
        self.on_unit_done = on_unit_done

    def _notify(self, key: str, status: str) -> None:
        if self.on_unit_done is not None:
            self.on_unit_done(key, status)

    async def run(self, split_units: Sequence[SplitUnit],
                  existing_units: Optional[Sequence[TranslationUnit]] = None,
                  retranslate: bool = False) -> OrchestrationResult:
        """
        Translate what changed and merge it with what can be reused.

        Raises:
            ConnectivityError: the backend became unusable; not a unit failure
        """
        result = OrchestrationResult()
        classification = classify([s.unit for s in split_units], existing_units, retranslate)
        existing_by_key = {u.key: u for u in existing_units or []}

        for unit in classification.unchanged:
            _reuse_values(unit, existing_by_key[unit.key], result.values)
            result.reused_units.append(unit.key)
            self._notify(unit.key, UNIT_REUSED)

        if not classification.has_changes:
            result.skipped = True
            return result

        changed_keys = {u.key for u in classification.changed}
        pending: List[SplitUnit] = []
        for split_unit in split_units:
            if split_unit.key not in changed_keys:
                continue
            if split_unit.unit.is_passthrough or not split_unit.unit.sendable_members():
                _source_values(split_unit.unit, result.values)
                self._notify(split_unit.key, UNIT_PASSTHROUGH)
            else:
                pending.append(split_unit)

        await self._dispatch(pending, result)
        return result

    async def _dispatch(self, pending: Sequence[SplitUnit], result: OrchestrationResult) -> None:
        work: List[Tuple[SplitUnit, TranslationUnit]] = [
            (split_unit, sub) for split_unit in pending for sub in split_unit.dispatch_units()
        ]
        remaining = {s.key: len(s.dispatch_units()) for s in pending}
        merged: Dict[str, Dict[str, str]] = {s.key: {} for s in pending}
        errors: Dict[str, Exception] = {}

        for start in range(0, len(work), self.concurrency):
            batch = work[start:start + self.concurrency]
            debug(f"Dispatching {len(batch)} unit(s) to {self.translator.target_lang}")
            replies = await asyncio.gather(
                *(self.translator.translate_unit(sub) for _, sub in batch),
                return_exceptions=True,
            )

            for (split_unit, sub), reply in zip(batch, replies):
                if isinstance(reply, BaseException):
                    if isinstance(reply, ConnectivityError) or not isinstance(reply, Exception):
                        raise reply
                    warning(f"Unit {sub.key} failed ({self.translator.target_lang}): {reply}")
                    errors.setdefault(split_unit.key, reply)
                else:
                    merged[split_unit.key].update(reply)

                remaining[split_unit.key] -= 1
                if remaining[split_unit.key] == 0:
                    self._finish(split_unit, merged[split_unit.key], errors.get(split_unit.key), result)

    def _finish(self, split_unit: SplitUnit, translations: Dict[str, str],
                error: Optional[Exception], result: OrchestrationResult) -> None:
        unit = split_unit.unit
        if error is not None:
            _source_values(unit, result.values)
            result.failed_units[unit.key] = error
            self._notify(unit.key, UNIT_FAILED)
            return
        for member in unit.members:
            result.values[member.path] = translations.get(member.identity, member.value)
        result.translated_units.append(unit.key)
        self._notify(unit.key, UNIT_TRANSLATED)

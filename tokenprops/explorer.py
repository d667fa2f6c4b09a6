"""
explorer.py - Exploration Driver

Searches for inputs that violate catalog properties, using hypothesis as the
search and shrinking backend.

For each property:
1. Draw an input assignment from the property's strategy
2. Evaluate it against a freshly built subject (properties.base.evaluate)
3. Discarded assignments are rejected and resampled
4. On a violation, hypothesis shrinks the assignment (amounts toward 0,
   addresses toward the canonical set) and replays the minimal one last;
   that replay's witness is what gets reported

Verdicts:
    PASSED        - no violation within max_examples
    FAILED        - a PropertyViolation, with its minimal witness
    INCONCLUSIVE  - precondition unsatisfiable, time budget exhausted (also
                    when a single subject call blocks past it), or the
                    subject behaved non-deterministically
"""

from __future__ import annotations
from concurrent.futures import ProcessPoolExecutor
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Union
import threading
import time

from hypothesis import HealthCheck, Verbosity, given, reject
from hypothesis import seed as hypothesis_seed
from hypothesis import settings as hypothesis_settings
from hypothesis.errors import Flaky, Unsatisfiable

from .core import (
    # Types
    TokenSubject, Witness,
    # Constants
    DEFAULT_MAX_EXAMPLES, DEFAULT_TIME_BUDGET,
    # Exceptions
    Discarded, EvaluationTimeout, PreconditionUnsatisfiable, PropertyViolation,
)
from .properties import CATALOG, Evaluation, Property, evaluate, get_property, list_properties


SubjectFactory = Callable[[], TokenSubject]

REASON_UNSATISFIABLE = "precondition unsatisfiable"
REASON_TIMEOUT = "time budget exhausted"
REASON_FLAKY = "subject behaved non-deterministically"


class Verdict(Enum):
    PASSED = "passed"
    FAILED = "failed"
    INCONCLUSIVE = "inconclusive"


@dataclass(frozen=True)
class ExplorationSettings:
    """
    Search configuration shared by every property in a run.

    Attributes:
        max_examples: Valid examples hypothesis tries per property
        time_budget: Wall-clock seconds per property before the search gives up
        seed: Fixed seed for a reproducible search (None = random)
        derandomize: Derive the seed from the property itself
        workers: Processes used by run_catalog (1 = run in-process)
    """
    max_examples: int = DEFAULT_MAX_EXAMPLES
    time_budget: float = DEFAULT_TIME_BUDGET
    seed: Optional[int] = None
    derandomize: bool = False
    workers: int = 1

    def __post_init__(self):
        if self.max_examples < 1:
            raise ValueError(f"max_examples must be positive, got {self.max_examples}")
        if self.time_budget <= 0:
            raise ValueError(f"time_budget must be positive, got {self.time_budget}")
        if self.workers < 1:
            raise ValueError(f"workers must be positive, got {self.workers}")


@dataclass(frozen=True)
class PropertyResult:
    """
    Harness-facing outcome of checking one property.

    Attributes:
        property_id: Stable property identifier
        name: Property name
        verdict: PASSED, FAILED or INCONCLUSIVE
        reason: Why the verdict was reached (empty for PASSED)
        witness: Minimal reproducible counterexample (FAILED only)
        examples: Number of assignments that reached the call under test
        elapsed: Wall-clock seconds spent
    """
    property_id: str
    name: str
    verdict: Verdict
    reason: str = ""
    witness: Optional[Witness] = None
    examples: int = 0
    elapsed: float = 0.0

    @property
    def passed(self) -> bool:
        return self.verdict is Verdict.PASSED

    @property
    def failed(self) -> bool:
        return self.verdict is Verdict.FAILED

    def raise_for_verdict(self) -> None:
        """
        Raise the matching error for a non-passing result.

        Raises:
            PropertyViolation: FAILED
            EvaluationTimeout: INCONCLUSIVE because the time budget ran out
            PreconditionUnsatisfiable: any other INCONCLUSIVE result
        """
        if self.verdict is Verdict.FAILED:
            raise PropertyViolation(self.witness)
        if self.verdict is Verdict.INCONCLUSIVE:
            if self.reason == REASON_TIMEOUT:
                raise EvaluationTimeout(f"{self.property_id}: {self.reason}")
            raise PreconditionUnsatisfiable(f"{self.property_id}: {self.reason}")

    def __repr__(self) -> str:
        suffix = f" ({self.reason})" if self.reason else ""
        return f"PropertyResult({self.property_id} {self.name}: {self.verdict.value}{suffix})"


class _Search:
    """Per-property bookkeeping shared with the hypothesis test body."""

    def __init__(self, time_budget: float):
        self.time_budget = time_budget
        self.deadline = time.monotonic() + time_budget
        self.examples = 0
        self.violated = False
        self.witness: Optional[Witness] = None
        self.budget_exhausted = False
        self.abandoned = False

    def out_of_time(self) -> bool:
        if self.abandoned:
            return True
        # Once a violation is seen, shrinking may run on past the deadline so
        # the final replay still reproduces it.
        if self.violated:
            return False
        if time.monotonic() >= self.deadline:
            self.budget_exhausted = True
        return self.budget_exhausted


class _BoundedRun:
    """
    Runs a hypothesis test in a daemon thread so the caller can stop waiting.

    A subject call that blocks cannot be interrupted, only abandoned: the
    thread keeps it, and the search behind it rejects every later example.
    """

    def __init__(self, test: Callable[[], None]):
        self.error: Optional[BaseException] = None
        self.thread = threading.Thread(target=self._run, args=(test,), daemon=True)
        self.thread.start()

    def _run(self, test: Callable[[], None]) -> None:
        try:
            test()
        except BaseException as e:
            self.error = e

    def wait(self, timeout: float) -> bool:
        """Wait up to timeout seconds; True if the test has finished."""
        self.thread.join(max(0.0, timeout))
        return not self.thread.is_alive()

    def finish(self) -> None:
        """Re-raise, in the caller's thread, whatever the test raised."""
        if self.error is not None:
            raise self.error


class Explorer:
    """
    Checks catalog properties against a token subject.

    Each evaluation builds a fresh subject from subject_factory, so no state
    is shared between evaluations or properties.

    Example:
        explorer = Explorer(ReferenceToken, ExplorationSettings(max_examples=100))
        result = explorer.check("ERC20-STDPROP-15")
        assert result.passed

        for result in explorer.check_all(operation="approve"):
            print(result)
    """

    def __init__(
        self,
        subject_factory: SubjectFactory,
        settings: Optional[ExplorationSettings] = None,
        verbose: bool = False,
    ):
        """
        Args:
            subject_factory: Zero-argument callable returning a fresh subject
            settings: Search configuration (defaults to ExplorationSettings())
            verbose: Print one line per property, and the witness on failure
        """
        self.subject_factory = subject_factory
        self.settings = settings or ExplorationSettings()
        self.verbose = verbose

    # ========================================================================
    # SEARCH
    # ========================================================================

    def _hypothesis_settings(self) -> hypothesis_settings:
        return hypothesis_settings(
            max_examples=self.settings.max_examples,
            deadline=None,
            database=None,
            derandomize=self.settings.derandomize,
            report_multiple_bugs=False,
            suppress_health_check=list(HealthCheck),
            verbosity=Verbosity.quiet,
        )

    def check(self, prop: Union[str, Property]) -> PropertyResult:
        """
        Search for a violation of one property.

        Args:
            prop: Property, or its ID or name

        Returns:
            PropertyResult with the verdict and, on failure, the shrunk witness

        The search runs in a daemon thread and is abandoned at the time
        budget, so a subject call that blocks cannot hold up the caller. Once
        a violation is seen, shrinking gets one more budget; if it is still
        running then, the latest witness is reported.
        """
        prop = get_property(prop)
        search = _Search(self.settings.time_budget)
        started = time.monotonic()

        def run_one(inputs: Dict[str, Any]) -> None:
            if search.out_of_time():
                reject()
            try:
                evaluate(prop, self.subject_factory(), inputs)
            except Discarded:
                reject()
            except PropertyViolation as e:
                search.violated = True
                search.witness = e.witness
                search.examples += 1
                raise
            search.examples += 1

        test = self._hypothesis_settings()(given(prop.strategy())(run_one))
        if self.settings.seed is not None:
            test = hypothesis_seed(self.settings.seed)(test)

        def result(verdict: Verdict, reason: str = "", witness: Optional[Witness] = None) -> PropertyResult:
            return PropertyResult(
                property_id=prop.id,
                name=prop.name,
                verdict=verdict,
                reason=reason,
                witness=witness,
                examples=search.examples,
                elapsed=time.monotonic() - started,
            )

        run = _BoundedRun(test)
        finished = run.wait(search.deadline - time.monotonic())
        if not finished and search.violated:
            # Shrinking is under way: allow it one more budget.
            finished = run.wait(search.time_budget)
        if not finished:
            search.abandoned = True
            if search.witness is not None:
                return self._report(result(Verdict.FAILED, search.witness.message, search.witness))
            search.budget_exhausted = True
            return self._report(result(Verdict.INCONCLUSIVE, REASON_TIMEOUT))

        try:
            run.finish()
        except PropertyViolation as e:
            outcome = result(Verdict.FAILED, e.witness.message, e.witness)
        except Unsatisfiable:
            reason = REASON_TIMEOUT if search.budget_exhausted else REASON_UNSATISFIABLE
            outcome = result(Verdict.INCONCLUSIVE, reason)
        except Flaky:
            outcome = result(Verdict.INCONCLUSIVE, REASON_FLAKY)
        else:
            if search.budget_exhausted:
                outcome = result(Verdict.INCONCLUSIVE, REASON_TIMEOUT)
            elif search.examples == 0:
                outcome = result(Verdict.INCONCLUSIVE, REASON_UNSATISFIABLE)
            else:
                outcome = result(Verdict.PASSED)
        return self._report(outcome)

    def _report(self, outcome: PropertyResult) -> PropertyResult:
        if self.verbose:
            _print_result(outcome)
        return outcome

    def check_all(
        self,
        properties: Optional[Iterable[Union[str, Property]]] = None,
        operation: Optional[str] = None,
    ) -> List[PropertyResult]:
        """
        Check several properties, in the order given (catalog order by default).

        Args:
            properties: Properties (or IDs/names) to check (default: the whole catalog)
            operation: Restrict to one operation group (reads, transfer, transferFrom, approve)
        """
        if properties is None:
            selected = list_properties(operation)
        else:
            selected = [get_property(p) for p in properties]
            if operation is not None:
                selected = [p for p in selected if p.operation == operation]
        return [self.check(p) for p in selected]

    def replay(self, prop: Union[str, Property], inputs: Mapping[str, Any]) -> Evaluation:
        """
        Deterministically re-run one input assignment, e.g. a witness's inputs.

        Raises:
            PropertyViolation: If the assignment still violates the property
            Discarded: If it no longer reaches the precondition
        """
        return evaluate(get_property(prop), self.subject_factory(), dict(inputs))


# ============================================================================
# CATALOG RUNS
# ============================================================================

def _check_in_worker(
    subject_factory: SubjectFactory,
    settings: ExplorationSettings,
    property_id: str,
) -> PropertyResult:
    return Explorer(subject_factory, settings).check(property_id)


def run_catalog(
    subject_factory: SubjectFactory,
    settings: Optional[ExplorationSettings] = None,
    properties: Optional[Iterable[Union[str, Property]]] = None,
    verbose: bool = False,
) -> List[PropertyResult]:
    """
    Check every selected property, in parallel when settings.workers > 1.

    Each worker process owns its subjects; nothing mutable is shared. Every
    check is bounded by settings.time_budget, so no worker waits on a blocked
    subject call. With workers > 1, subject_factory must be picklable (a
    class or a module-level function).

    Returns:
        Results in the order the properties were given (catalog order by default)
    """
    settings = settings or ExplorationSettings()
    selected = list(CATALOG) if properties is None else [get_property(p) for p in properties]

    if settings.workers == 1:
        return Explorer(subject_factory, settings, verbose).check_all(selected)

    ids = [p.id for p in selected]
    with ProcessPoolExecutor(max_workers=settings.workers) as pool:
        results = list(pool.map(
            _check_in_worker,
            [subject_factory] * len(ids),
            [settings] * len(ids),
            ids,
        ))
    if verbose:
        for outcome in results:
            _print_result(outcome)
    return results


def summarize(results: Iterable[PropertyResult]) -> Dict[str, Any]:
    """
    Aggregate a run.

    Returns:
        Dict with keys:
        - 'valid': bool - True if no property FAILED
        - 'passed', 'failed', 'inconclusive': counts
        - 'failed_ids', 'inconclusive_ids': property IDs, in the order given
    """
    results = list(results)
    failed = [r.property_id for r in results if r.verdict is Verdict.FAILED]
    inconclusive = [r.property_id for r in results if r.verdict is Verdict.INCONCLUSIVE]
    return {
        'valid': not failed,
        'passed': sum(1 for r in results if r.verdict is Verdict.PASSED),
        'failed': len(failed),
        'inconclusive': len(inconclusive),
        'failed_ids': failed,
        'inconclusive_ids': inconclusive,
    }


def _print_result(result: PropertyResult) -> None:
    if result.verdict is Verdict.PASSED:
        print(f"✓ PASSED       {result.property_id} {result.name} ({result.examples} examples)")
    elif result.verdict is Verdict.FAILED:
        print(f"✗ FAILED       {result.property_id} {result.name}: {result.reason}")
        print(repr(result.witness))
    else:
        print(f"⚠ INCONCLUSIVE {result.property_id} {result.name}: {result.reason}")

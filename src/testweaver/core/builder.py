"""
IR builder.

Turns the context fragments found in one source file into suites and
cases. A fragment is either a ``data-test-context`` element with the
directive-bearing elements below it, or one comment-macro case.

Fragments sharing a (context, scenario) pair within the file collapse
into one case: steps, expectations and locations are appended in
document order and ids are assigned afterwards, so they stay unique and
sequential (``step-1``, ``step-2``, ... / ``exp-1``, ...).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from .directive_lexer import (
    ParsedExpectation,
    ParsedStep,
    parse_expectation_directive,
    parse_step_directive,
)
from .ir import (
    Case,
    CaseType,
    Expectation,
    LocationRef,
    Selector,
    SourceRef,
    Step,
    Suite,
    make_case_id,
)

logger = logging.getLogger(__name__)


@dataclass
class DirectiveTarget:
    """An element (or macro line) carrying step and/or expectation directives."""

    location: LocationRef
    selector: Selector | None = None
    step_directive: str | None = None
    expect_directive: str | None = None
    test_id: str | None = None


@dataclass
class ContextFragment:
    """One declaration of a (context, scenario) pair within a file."""

    context: str
    scenario: str
    location: LocationRef
    route: str | None = None
    case_type: CaseType | None = None
    targets: list[DirectiveTarget] = field(default_factory=list)


@dataclass
class _CaseDraft:
    context: str
    scenario: str
    route: str | None = None
    case_type: CaseType | None = None
    defined_at: list[LocationRef] = field(default_factory=list)
    steps: list[tuple[ParsedStep, Selector, LocationRef]] = field(default_factory=list)
    expectations: list[tuple[ParsedExpectation, Selector | None, LocationRef]] = field(
        default_factory=list
    )

    def absorb(self, fragment: ContextFragment) -> None:
        self.defined_at.append(fragment.location)
        if self.route is None and fragment.route:
            self.route = fragment.route
        if self.case_type is None and fragment.case_type is not None:
            self.case_type = fragment.case_type

        for target in fragment.targets:
            if target.step_directive is not None:
                parsed_steps = parse_step_directive(target.step_directive)
                if target.selector is None:
                    if parsed_steps:
                        logger.debug(
                            f"{target.location}: dropping {len(parsed_steps)} step(s) "
                            "on an element without a test identifier"
                        )
                else:
                    for parsed in parsed_steps:
                        self.steps.append((parsed, target.selector, target.location))
            if target.expect_directive is not None:
                for expectation in parse_expectation_directive(target.expect_directive):
                    self.expectations.append((expectation, target.selector, target.location))

    def build(self) -> Case:
        steps = [
            Step(
                id=f"step-{index}",
                action=parsed.action,
                selector=selector,
                value=parsed.value,
                delay_ms=parsed.delay_ms,
                description=parsed.description,
                raw_action=parsed.raw_action,
                source=location,
            )
            for index, (parsed, selector, location) in enumerate(self.steps, start=1)
        ]
        expectations = [
            Expectation(
                id=f"exp-{index}",
                type=parsed.type,
                selector=selector,
                value=parsed.value,
                description=parsed.description,
                source=location,
            )
            for index, (parsed, selector, location) in enumerate(self.expectations, start=1)
        ]
        case_type = self.case_type
        if case_type is None:
            case_type = CaseType.E2E if self.route else CaseType.UI
        return Case(
            id=make_case_id(self.context, self.scenario),
            context=self.context,
            scenario=self.scenario,
            type=case_type,
            route=self.route,
            defined_at=self.defined_at,
            steps=steps,
            expectations=expectations,
        )


def build_suites(fragments: list[ContextFragment], source: SourceRef) -> list[Suite]:
    """
    Build suites from the fragments of one source file.

    Args:
        fragments: Context fragments in any order; they are processed in
            document position order
        source: The file the fragments came from

    Returns:
        One suite per distinct context, in order of first appearance
    """
    ordered = sorted(fragments, key=lambda f: (f.location.line, f.location.column))

    drafts: dict[str, dict[str, _CaseDraft]] = {}
    for fragment in ordered:
        cases = drafts.setdefault(fragment.context, {})
        draft = cases.get(fragment.scenario)
        if draft is None:
            draft = _CaseDraft(context=fragment.context, scenario=fragment.scenario)
            cases[fragment.scenario] = draft
        draft.absorb(fragment)

    suites = []
    for context, cases in drafts.items():
        suites.append(
            Suite(
                id=context,
                context=context,
                source_files=[source],
                cases=[draft.build() for draft in cases.values()],
            )
        )
    return suites

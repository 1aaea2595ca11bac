"""
Test generators.

Each generator renders one case into the source of one test file for a
specific runner. Look generators up by name with ``get_generator``.
"""

from ..core.errors import GenerationError
from .base import TEST_ID_ATTRIBUTE, Generator, read_provenance
from .playwright import PlaywrightGenerator
from .pytest_playwright import PytestPlaywrightGenerator
from .selectors import QueryKind, ResolvedSelector, resolve_selector
from .vitest import VitestGenerator
from .writer import write_if_changed

GENERATORS: dict[str, type[Generator]] = {
    VitestGenerator.name: VitestGenerator,
    PlaywrightGenerator.name: PlaywrightGenerator,
    PytestPlaywrightGenerator.name: PytestPlaywrightGenerator,
}


def available_generators() -> list[str]:
    return list(GENERATORS)


def get_generator(name: str, **kwargs) -> Generator:
    """
    Instantiate a generator by name.

    Raises:
        GenerationError: If no generator has that name
    """
    generator_class = GENERATORS.get(name)
    if generator_class is None:
        raise GenerationError(
            f"Unknown generator '{name}'. Available: {', '.join(available_generators())}"
        )
    return generator_class(**kwargs)


__all__ = [
    "GENERATORS",
    "TEST_ID_ATTRIBUTE",
    "Generator",
    "PlaywrightGenerator",
    "PytestPlaywrightGenerator",
    "QueryKind",
    "ResolvedSelector",
    "VitestGenerator",
    "available_generators",
    "get_generator",
    "read_provenance",
    "resolve_selector",
    "write_if_changed",
]

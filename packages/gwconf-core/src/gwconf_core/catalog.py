"""Test catalog: the ordered set of conformance tests for a run.

A catalog is an explicit value built by the caller and handed to the
orchestrator; there is no global registration state. Registration order is
execution order.

Example:
    >>> from gwconf_core.catalog import TestCatalog
    >>> from gwconf_core.features import SupportedFeature
    >>> catalog = TestCatalog()
    >>> @catalog.test(
    ...     "HTTPRouteSimpleSameNamespace",
    ...     features=[SupportedFeature.GATEWAY, SupportedFeature.HTTP_ROUTE],
    ...     description="A single HTTPRoute in the gateway namespace",
    ...     isolated=True,
    ... )
    ... def simple_same_namespace(t):
    ...     t.require(t.namespace is not None, "expected an isolation namespace")
    >>> [test.short_name for test in catalog]
    ['HTTPRouteSimpleSameNamespace']
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Iterator, Sequence
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from gwconf_core.errors import DuplicateTestError
from gwconf_core.features import SupportedFeature

if TYPE_CHECKING:
    from gwconf_core.context import ConformanceT

TestBody = Callable[["ConformanceT"], None]


@dataclass(frozen=True)
class ConformanceTest:
    """One registered conformance test.

    Attributes:
        short_name: Unique name within the catalog.
        body: Callable exercising the cluster through a ConformanceT.
        features: Features the test requires; empty means always applicable.
        description: Human-readable summary.
        manifests: YAML manifest paths applied before the body runs.
        isolated: Run inside a dedicated namespace.
        slow: The test is known to take a long time.
        timeout: Per-test timeout in seconds; None uses the suite default.
    """

    __test__ = False

    short_name: str
    body: TestBody
    features: tuple[SupportedFeature, ...] = ()
    description: str = ""
    manifests: tuple[str, ...] = ()
    isolated: bool = False
    slow: bool = False
    timeout: float | None = None
    _feature_set: frozenset[SupportedFeature] = field(
        default=frozenset(), init=False, repr=False, compare=False
    )

    def __post_init__(self) -> None:
        if not self.short_name or not self.short_name.strip():
            raise ValueError("ConformanceTest.short_name must not be empty")
        if self.timeout is not None and self.timeout <= 0:
            raise ValueError(f"{self.short_name}: timeout must be positive")
        features = tuple(SupportedFeature(f) for f in self.features)
        object.__setattr__(self, "features", features)
        object.__setattr__(self, "manifests", tuple(self.manifests))
        object.__setattr__(self, "_feature_set", frozenset(features))

    @property
    def feature_set(self) -> frozenset[SupportedFeature]:
        return self._feature_set


class TestCatalog:
    """Ordered, name-unique collection of ConformanceTest.

    Tests are added with register() or the test() decorator. Once frozen
    (the orchestrator freezes the catalog it is given) no more tests can be
    added.
    """

    __test__ = False

    def __init__(self, tests: Iterable[ConformanceTest] = ()) -> None:
        self._tests: list[ConformanceTest] = []
        self._names: set[str] = set()
        self._frozen = False
        for test in tests:
            self.register(test)

    def __iter__(self) -> Iterator[ConformanceTest]:
        return iter(self._tests)

    def __len__(self) -> int:
        return len(self._tests)

    def __contains__(self, name: object) -> bool:
        return name in self._names

    @property
    def frozen(self) -> bool:
        return self._frozen

    @property
    def names(self) -> list[str]:
        return [t.short_name for t in self._tests]

    def freeze(self) -> TestCatalog:
        """Prevent further registration and return self."""
        self._frozen = True
        return self

    def get(self, short_name: str) -> ConformanceTest | None:
        for test in self._tests:
            if test.short_name == short_name:
                return test
        return None

    def register(self, test: ConformanceTest) -> ConformanceTest:
        """Append a test to the catalog.

        Raises:
            DuplicateTestError: If the short name is already registered.
            RuntimeError: If the catalog is frozen.
        """
        if self._frozen:
            raise RuntimeError("Cannot register tests in a frozen catalog")
        if test.short_name in self._names:
            raise DuplicateTestError(test.short_name)
        self._tests.append(test)
        self._names.add(test.short_name)
        return test

    def test(
        self,
        short_name: str,
        *,
        features: Sequence[SupportedFeature | str] = (),
        description: str = "",
        manifests: Sequence[str] = (),
        isolated: bool = False,
        slow: bool = False,
        timeout: float | None = None,
    ) -> Callable[[TestBody], TestBody]:
        """Decorator registering a function as a conformance test body."""

        def decorator(body: TestBody) -> TestBody:
            self.register(
                ConformanceTest(
                    short_name=short_name,
                    body=body,
                    features=tuple(SupportedFeature(f) for f in features),
                    description=description or (body.__doc__ or "").strip(),
                    manifests=tuple(manifests),
                    isolated=isolated,
                    slow=slow,
                    timeout=timeout,
                )
            )
            return body

        return decorator


__all__ = ["ConformanceTest", "TestBody", "TestCatalog"]

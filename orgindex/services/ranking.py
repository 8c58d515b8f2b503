from dataclasses import dataclass

from orgindex.services.aggregator import AggregationContext
from orgindex.services.aggregator import Contributor


ALL_CONTRIBUTORS = "all"
ALL_CONTRIBUTORS_LABEL = "All Contributors"
DEFAULT_TOP_CONTRIBUTORS = 12


@dataclass(frozen=True)
class ContributorSelector:
    """Either every contributor (`login is None`) or one contributor by login."""

    login: str | None = None

    @classmethod
    def all(cls) -> "ContributorSelector":
        return cls()

    @classmethod
    def specific(cls, login: str) -> "ContributorSelector":
        if not login:
            raise ValueError("login cannot be empty")
        return cls(login=login)

    @classmethod
    def parse(cls, raw_value: str | None) -> "ContributorSelector":
        value = (raw_value or "").strip()
        if not value or value == ALL_CONTRIBUTORS:
            return cls.all()
        return cls.specific(value)

    @property
    def is_all(self) -> bool:
        return self.login is None


class ContributorRanking:
    def __init__(self, context: AggregationContext) -> None:
        self.context = context
        # sorted() is stable, so ties keep discovery order.
        self.ranked: list[Contributor] = sorted(
            context.contributors.values(),
            key=lambda contributor: contributor.total_contributions,
            reverse=True,
        )

    def top(self, limit: int = DEFAULT_TOP_CONTRIBUTORS) -> list[Contributor]:
        return self.ranked[: max(0, limit)]

    def resolve(self, selector: ContributorSelector) -> dict[str, int]:
        """Return the daily activity map the selector points at.

        `All` returns the global map itself, not a copy. Unknown logins
        resolve to an empty map.
        """

        if selector.is_all:
            return self.context.global_activity

        contributor = self.context.contributors.get(selector.login)
        if contributor is None:
            return {}
        return contributor.daily_activity

    def selector_options(self) -> list[tuple[str, str]]:
        options = [(ALL_CONTRIBUTORS, ALL_CONTRIBUTORS_LABEL)]
        options.extend(
            (contributor.login, f"{contributor.login} ({contributor.total_contributions})")
            for contributor in self.ranked
        )
        return options

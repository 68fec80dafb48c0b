"""Accumulated clause state owned by a single query builder."""

# Standard library imports
from dataclasses import dataclass, field

# Local imports
from sqlchain.domain.value_objects.condition import Condition, Join


@dataclass
class BuilderState:
    """
    Clause state of one statement.

    Every list preserves insertion order and rendering reproduces it.

    Attributes:
        select: Raw projected expressions; empty renders ``*``
        from_table: FROM target (may include an alias)
        join: Join records
        where: WHERE conditions
        group: GROUP BY expressions
        having: HAVING expression
        order: ``"<column> <ASC|DESC>"`` entries
        limit: LIMIT value; None or zero emits no LIMIT clause
        offset: OFFSET value; zero emits no OFFSET clause
        set: Rendered ``col = value`` fragments for UPDATE
        values: Quoted column name to rendered literal for INSERT
    """

    select: list[str] = field(default_factory=list)
    from_table: str | None = None
    join: list[Join] = field(default_factory=list)
    where: list[Condition] = field(default_factory=list)
    group: list[str] = field(default_factory=list)
    having: str | None = None
    order: list[str] = field(default_factory=list)
    limit: int | None = None
    offset: int = 0
    set: list[str] = field(default_factory=list)
    values: dict[str, str] = field(default_factory=dict)

    def copy(self) -> "BuilderState":
        """Return a copy whose lists can be changed without touching this state."""
        return BuilderState(
            select=list(self.select),
            from_table=self.from_table,
            join=list(self.join),
            where=list(self.where),
            group=list(self.group),
            having=self.having,
            order=list(self.order),
            limit=self.limit,
            offset=self.offset,
            set=list(self.set),
            values=dict(self.values),
        )

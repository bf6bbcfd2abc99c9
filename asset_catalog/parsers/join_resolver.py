"""In-memory joins between the flat-file tables."""

from collections import defaultdict
from dataclasses import dataclass, field

from asset_catalog.parsers.base import ColumnRow, LineageRow, TableSet


@dataclass
class ResolvedRelations:
    """Everything joined onto one asset row."""

    columns: list[ColumnRow] = field(default_factory=list)
    tags: list[str] = field(default_factory=list)
    glossary_terms: list[str] = field(default_factory=list)
    lineage: list[LineageRow] = field(default_factory=list)


class JoinResolver:
    """
    Index maps over one loaded ``TableSet``.

    Built once per load; each ``resolve_asset`` call is a handful of dict
    lookups. Join keys are compared as normalized strings (see
    ``FieldCoercer.key``), so ``"7"`` in one table matches ``7`` in another.
    Association rows pointing at unknown tags or terms are dropped.
    """

    def __init__(self, table_set: TableSet):
        self.table_set = table_set

        self._columns: dict[str, list[ColumnRow]] = defaultdict(list)
        for column in table_set.columns:
            self._columns[column.data_asset_id].append(column)

        self._tag_names = {tag.id: tag.name for tag in table_set.tags}
        self._asset_tags: dict[str, list[str]] = defaultdict(list)
        for link in table_set.asset_tags:
            self._asset_tags[link.data_asset_id].append(link.tag_id)

        self._term_names = {term.id: term.name for term in table_set.glossary_terms}
        self._asset_terms: dict[str, list[str]] = defaultdict(list)
        for link in table_set.asset_terms:
            self._asset_terms[link.data_asset_id].append(link.term_id)

        # Row positions keep table order when an asset appears on both sides
        self._lineage: dict[str, list[int]] = defaultdict(list)
        for position, row in enumerate(table_set.lineage):
            self._lineage[row.referenced_object_id].append(position)
            if row.referencing_object_id != row.referenced_object_id:
                self._lineage[row.referencing_object_id].append(position)

        self._bookmarks: dict[str, list[str]] = defaultdict(list)
        for bookmark in table_set.bookmarks:
            self._bookmarks[bookmark.user_id].append(bookmark.data_asset_id)

    def resolve_asset(self, asset_id: str) -> ResolvedRelations:
        """Columns, tag names, glossary term names and lineage rows for one asset."""
        return ResolvedRelations(
            columns=list(self._columns.get(asset_id, ())),
            tags=self._names(self._asset_tags.get(asset_id, ()), self._tag_names),
            glossary_terms=self._names(self._asset_terms.get(asset_id, ()), self._term_names),
            lineage=[
                self.table_set.lineage[position]
                for position in sorted(self._lineage.get(asset_id, ()))
            ],
        )

    def bookmarked_asset_ids(self, user_id: str) -> list[str]:
        """Asset ids a user bookmarked, first occurrence order."""
        return list(dict.fromkeys(self._bookmarks.get(user_id, ())))

    @staticmethod
    def _names(ids, names: dict[str, str]) -> list[str]:
        return [names[i] for i in ids if i in names]

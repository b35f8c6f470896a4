from typing import Iterable, List, Optional, Tuple

from csv_gateway.core.schemas import QueryDefinition


# -----------------------------------------------------------------------------
# REGISTRY MODULE
# Purpose: resolve a client supplied identifier to a pre-approved statement.
# Built once at startup, read only afterwards, shared by every request.
# -----------------------------------------------------------------------------


class QueryRegistry:
    """Case-insensitive, first-match lookup over the configured queries."""

    def __init__(self, definitions: Iterable[QueryDefinition]):
        self._definitions: Tuple[QueryDefinition, ...] = tuple(definitions)

    def lookup(self, query_id: Optional[str]) -> Optional[QueryDefinition]:
        """
        Find the definition for an identifier.

        Args:
            query_id: Untrusted identifier taken from the request.

        Returns:
            The first definition (in load order) whose name matches
            ignoring case, or None when nothing matches.

        Example:
            definition = registry.lookup("USERS")
        """
        if query_id is None:
            return None

        wanted = query_id.lower()
        for definition in self._definitions:
            if definition.name.lower() == wanted:
                return definition
        return None

    def names(self) -> List[str]:
        return [definition.name for definition in self._definitions]

    def __len__(self):
        return len(self._definitions)

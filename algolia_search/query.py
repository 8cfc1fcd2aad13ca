"""
Query parameter encoding.

Search parameters travel as URL-encoded query strings, both in search requests
(`multiple_queries`) and embedded in secured API keys. Structured values (lists,
objects) are embedded as compact JSON inside the parameter value.
"""

from urllib.parse import parse_qsl, quote
import msgspec


__all__ = [
    "Query",
    "encode_query",
    "decode_query",
    "encode_value",
]


def encode_value(value):
    # type: (object) -> str
    """
    Render a single parameter value as text.

    :param value: str, bool, int, float, or a JSON-serializable list/tuple/dict
    :return: Text value before percent-encoding
    :raises TypeError: If the value cannot be represented
    """
    if isinstance(value, str):
        return value
    # bool before int: bool is an int subclass
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, (list, tuple, dict)):
        return msgspec.json.encode(value).decode("utf-8")
    raise TypeError(f"Unsupported query parameter value type: {type(value).__name__}")


def encode_query(params):
    # type: (dict[str, object]) -> str
    """
    Serialize search parameters into a URL query string.

    Keys and values are percent-encoded (space becomes %20), pairs are joined with
    `&` in insertion order, and parameters whose value is None are omitted.

    :param params: Mapping of parameter names to values
    :return: Encoded query string (without leading `?`)
    """
    pairs = []
    for key, value in params.items():
        if value is None:
            continue
        pairs.append(f"{quote(str(key), safe='')}={quote(encode_value(value), safe='')}")
    return "&".join(pairs)


def decode_query(query_string):
    # type: (str) -> dict[str, str]
    """
    Parse a query string produced by `encode_query`.

    :param query_string: Encoded query string
    :return: Mapping of parameter names to text values
    """
    return dict(parse_qsl(query_string, keep_blank_values=True))


class Query:
    """
    Fluent builder for search parameters.

    Setters return the query itself so calls can be chained:

        Query().set_tag_filters("public").set_hits_per_page(20)
    """

    def __init__(self, params=None):
        # type: (dict[str, object]|None) -> None
        self._params = dict(params or {})  # type: dict[str, object]

    @property
    def params(self):
        # type: () -> dict[str, object]
        """Copy of the current parameters."""
        return dict(self._params)

    def set(self, name, value):
        # type: (str, object) -> Query
        """
        Set an arbitrary parameter; None removes it.

        :param name: Parameter name as understood by the service
        :param value: Parameter value
        :return: This query
        """
        if value is None:
            self._params.pop(name, None)
        else:
            self._params[name] = value
        return self

    def set_query(self, query):
        # type: (str) -> Query
        return self.set("query", query)

    def set_tag_filters(self, tag_filters):
        # type: (str|list) -> Query
        return self.set("tagFilters", tag_filters)

    def set_numeric_filters(self, numeric_filters):
        # type: (str|list) -> Query
        return self.set("numericFilters", numeric_filters)

    def set_facet_filters(self, facet_filters):
        # type: (str|list) -> Query
        return self.set("facetFilters", facet_filters)

    def set_filters(self, filters):
        # type: (str) -> Query
        return self.set("filters", filters)

    def set_hits_per_page(self, hits_per_page):
        # type: (int) -> Query
        return self.set("hitsPerPage", hits_per_page)

    def set_page(self, page):
        # type: (int) -> Query
        return self.set("page", page)

    def set_attributes_to_retrieve(self, attributes):
        # type: (list[str]) -> Query
        return self.set("attributesToRetrieve", list(attributes))

    def set_user_token(self, user_token):
        # type: (str) -> Query
        """Scope rate limits and analytics of a secured key to one end user."""
        return self.set("userToken", user_token)

    def set_valid_until(self, timestamp):
        # type: (int) -> Query
        """Unix timestamp after which a secured key embedding this query expires."""
        return self.set("validUntil", timestamp)

    def set_restrict_indices(self, indices):
        # type: (str|list[str]) -> Query
        if not isinstance(indices, str):
            indices = ",".join(indices)
        return self.set("restrictIndices", indices)

    def copy(self):
        # type: () -> Query
        return Query(self._params)

    def get_query_string(self):
        # type: () -> str
        """
        Encode the parameters as a URL query string.

        :return: Query string as produced by `encode_query`
        """
        return encode_query(self._params)

    def __eq__(self, other):
        if not isinstance(other, Query):
            return NotImplemented
        return self._params == other._params

    def __repr__(self):
        # type: () -> str
        return f"Query({self._params!r})"

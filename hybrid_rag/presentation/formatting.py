"""Search result rendering for agent tool output."""
from html import escape
from typing import Optional

from ..core.models.search import SearchResult


def _attr(name: str, value: object) -> str:
    return f'{name}="{escape(str(value), quote=True)}"'


def _result_attrs(result: SearchResult) -> list[str]:
    attrs = [_attr("score", result.score), _attr("title", result.display_title)]
    heading = result.metadata.get("heading_path")
    if heading:
        attrs.append(_attr("heading", heading))
    role = result.metadata.get("message_role")
    if role:
        attrs.append(_attr("role", role))
    if result.matched_terms:
        attrs.append(_attr("matched_terms", ", ".join(result.matched_terms)))
    if result.reranked:
        attrs.append('reranked="true"')
    return attrs


def format_search_results(
    results: list[SearchResult],
    source: str,
    query: str,
    mode: Optional[str] = None,
) -> str:
    """Render results as an XML-like block.

    Args:
        results: Search results, best first.
        source: Corpus name ("knowledge_base", "documents", "chat_history").
        query: Query the results answer.
        mode: Query type; defaults to the first result's query type.

    Returns:
        Rendered block.
    """
    if mode is None:
        mode = (results[0].query_type if results else None) or "mixed"

    header = f"<search_results {_attr('source', source)} {_attr('query', query)} {_attr('mode', mode)}>"
    body = [
        f"<result {' '.join(_result_attrs(r))}>\n<chunk_text>\n{r.chunk_text}\n</chunk_text>\n</result>"
        for r in results
    ]
    return "\n".join([header, *body, "</search_results>"])

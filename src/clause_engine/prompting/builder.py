"""Evidence-bounded prompt for claim decisions."""

from __future__ import annotations

from collections.abc import Sequence

from langchain_core.prompts import PromptTemplate

from clause_engine.types import Chunk, render_chunk

CHUNK_SEPARATOR = "\n---\n"
NO_CONTEXT_MARKER = "(No policy passages were retrieved for this query.)"

_DECISION_TEMPLATE = """
You are an expert insurance claims analyst. Decide the user's query strictly
from the policy passages below. Do not use outside knowledge, do not assume
facts the query does not state, and do not invent clauses.

CONTEXT (Policy Passages):
---
{context}
---

QUERY:
{query}

PROCEDURE:
1. Identify the facts stated in the query (procedure, item, age, duration, amount, location, policy).
2. Match each fact to the passages from the correct source document. Passages are tagged [Source: <name>]; never apply a clause from one document to a question about another.
3. If the query asks whether something is payable, covered or excluded, actively search the passages for exclusion lists, "not payable" items and annexures before concluding. An exclusion overrides a general coverage clause.
4. State your conclusion. If a fact needed for the decision is missing from the query or the passages, say so in the justification and choose "More Information Required".
5. Respond with the JSON object only. No introductory text, no markdown code fences.

OUTPUT RULES:
- "decision": exactly one of "Approved", "Rejected", "Approved (Partial)", "More Information Required".
- "amount_payable": a number greater than or equal to 0. It must be 0 when the decision is "Rejected" or "More Information Required".
- "justification": a short paragraph explaining the decision using only the passages.
- "clauses": an array, in order of relevance, of objects with "clause_text" (an exact snippet from the passages) and "reasoning" (why the snippet supports the decision).

JSON_OUTPUT FORMAT:
{{
  "decision": "Approved" | "Rejected" | "Approved (Partial)" | "More Information Required",
  "amount_payable": 0,
  "justification": "...",
  "clauses": [
    {{"clause_text": "...", "reasoning": "..."}}
  ]
}}
""".strip()


class DecisionPromptBuilder:
    """Renders the decision prompt from a query and ranked chunks.

    The output is a pure function of its inputs. The builder does not check
    the model's reply; `clause_engine.llm.schema` does.
    """

    def __init__(self, template: str = _DECISION_TEMPLATE) -> None:
        self.template = PromptTemplate.from_template(template)

    def build(self, query: str, chunks: Sequence[Chunk]) -> str:
        return self.template.format(context=render_context(chunks), query=query)


def render_context(chunks: Sequence[Chunk]) -> str:
    if not chunks:
        return NO_CONTEXT_MARKER
    return CHUNK_SEPARATOR.join(render_chunk(chunk) for chunk in chunks)

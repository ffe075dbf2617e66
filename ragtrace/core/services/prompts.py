"""Prompt templates for answer generation."""

from ..domain import HistoryItem, SourceMatch

# Returned verbatim when retrieval finds nothing; the model is told to use
# the same sentence when the documents do not contain the answer.
NO_MATCH_ANSWER = "The documents do not mention any relevant information."

CONTEXT_SEPARATOR = "\n---\n"

SYSTEM_PROMPT = f"""You are an enterprise knowledge assistant.
Answer the user's question concisely and formally, using only the internal
documents provided with the question.

If the documents do not contain the answer, reply exactly:
"{NO_MATCH_ANSWER}"
Do not make anything up."""

QUESTION_TEMPLATE = """Answer the current question based on the document content below.

[Document content]
{context}

[Current question]
{question}"""


def build_context(matches: list[SourceMatch]) -> str:
    """Join the content of all matches, in retrieval order."""
    return CONTEXT_SEPARATOR.join(match.content for match in matches)


def build_messages(
    question: str,
    history: list[HistoryItem],
    matches: list[SourceMatch],
) -> list[dict[str, str]]:
    """Assemble system instruction, prior turns and the augmented question."""
    messages = [{"role": "system", "content": SYSTEM_PROMPT}]
    messages.extend(item.to_message() for item in history)
    messages.append(
        {
            "role": "user",
            "content": QUESTION_TEMPLATE.format(
                context=build_context(matches), question=question
            ),
        }
    )
    return messages

"""System instruction assembly for grounded answers."""

from collections.abc import Sequence

CONTEXT_SEPARATOR = "\n\n---\n\n"

KNOWLEDGE_BASE_DIRECTIVE = """\
=== KNOWLEDGE BASE PRIORITY ===
1) ALWAYS search the KNOWLEDGE BASE below FIRST.
2) If the answer exists in the knowledge base, USE IT. Do NOT rely on general training for it.
3) Only use general knowledge if the knowledge base has NO relevant information, and say plainly that the knowledge base does not cover it.
4) When the knowledge base answers the question, be direct and confident. Do not hedge with phrases like "according to the provided context".

KNOWLEDGE BASE CONTEXT (use first):
{context}
"""

NO_CONTEXT_DIRECTIVE = """\
I do not currently have knowledge-base context for this question.
Say: "I don't have specific information about this in my knowledge base yet."
Then optionally provide general guidance or suggest uploading relevant documents."""


class PromptAssembler:
    """Builds the single system instruction sent to the model."""

    def __init__(self, separator: str = CONTEXT_SEPARATOR):
        self.separator = separator

    def assemble(self, base_instructions: str, context_chunks: Sequence[str]) -> str:
        """Prepend the bot's instructions verbatim to a grounded or no-context directive."""
        if context_chunks:
            context = self.separator.join(context_chunks)
            directive = KNOWLEDGE_BASE_DIRECTIVE.format(context=context)
        else:
            directive = NO_CONTEXT_DIRECTIVE

        return f"{base_instructions}\n\n{directive}"

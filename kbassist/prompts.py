"""Prompt templates for expansion, re-ranking and answer generation."""

from .models import ConversationTurn, RetrievedChunk

PROMPT_HISTORY_TURNS = 6
EXPANSION_HISTORY_TURNS = 4
RERANK_PREVIEW_LENGTH = 300

EXPANSION_SYSTEM_PROMPT = (
    "You are a query expansion expert. Generate alternative phrasings of user "
    "queries to improve information retrieval."
)

RERANK_SYSTEM_PROMPT = (
    "You are a relevance ranking expert. Rank information chunks by how well "
    "they answer the user question."
)

ANSWER_SYSTEM_PROMPT = """\
You are {name}, an expert AI assistant with 100% accuracy requirements. \
Your responses must be:
1. FACTUALLY ACCURATE - Only use information from the provided context
2. COMPREHENSIVE - Include all relevant details from the context
3. CONTEXT-AWARE - Use conversation history to understand follow-up questions
4. PRODUCT-FOCUSED - When discussing products, include all available details \
(name, category, price, features, specifications, etc.)
5. CLEAR AND STRUCTURED - Organize information logically

When users ask follow-up questions, use the conversation history to understand \
what product or topic they're referring to. Always provide complete, accurate \
answers based on the context provided."""

FOLLOW_UP_NOTE = (
    "Note: When the user asks follow-up questions (like \"tell me the category\", "
    "\"what about the price\", etc.), they are referring to the topic discussed in "
    "the previous conversation. Use the conversation history to understand what "
    "they are asking about."
)


def build_expansion_prompt(query: str, history: list[ConversationTurn]) -> str:
    """Build the instruction asking for alternative phrasings of ``query``.

    Returns:
        str: Prompt text for the query expander.
    """
    context_summary = ""
    if history:
        context_summary = "Previous conversation context: " + " | ".join(
            f"{turn.role}: {turn.content}"
            for turn in history[-EXPANSION_HISTORY_TURNS:]
        )

    return (
        "Given the user's question and conversation context, generate 3-5 "
        "alternative phrasings and expanded queries that would help find relevant "
        "information in a product database. Include:\n"
        "1. The original query\n"
        "2. Synonyms and related terms\n"
        "3. Product-specific variations\n"
        "4. Context-aware expansions if there's conversation history\n\n"
        f"User question: {query}\n"
        f"{context_summary}\n\n"
        "Return only the expanded queries, one per line, without numbering or "
        "bullets:"
    )


def build_rerank_prompt(query: str, chunks: list[RetrievedChunk]) -> str:
    """Build the instruction asking for chunk indices ordered by relevance.

    Returns:
        str: Prompt text listing each chunk preview with its index.
    """
    chunks_text = "\n\n".join(
        f"[{idx}] {chunk.text[:RERANK_PREVIEW_LENGTH]}"
        for idx, chunk in enumerate(chunks)
    )
    return (
        "Given the user's question and a list of information chunks, rank the "
        f"chunks by relevance (1 = most relevant, {len(chunks)} = least "
        "relevant).\n\n"
        f"User question: {query}\n\n"
        f"Chunks:\n{chunks_text}\n\n"
        "Return only a comma-separated list of chunk indices in order of "
        'relevance (e.g., "2,0,1,3"):'
    )


def format_source_label(chunk: RetrievedChunk) -> str:
    tag = chunk.source_tag
    if not tag:
        return ""
    position = chunk.position
    if position:
        return f"[Source: {tag}, Row {position}]"
    return f"[Source: {tag}]"


def build_rag_prompt(
    query: str,
    chunks: list[RetrievedChunk],
    history: list[ConversationTurn] | None = None,
    assistant_name: str = "Nick",
) -> str:
    """Build the answer prompt from retrieved context and recent history.

    Context entries are numbered from 1 and tagged with their source. The
    previous-conversation section is only present when history is given.

    Returns:
        str: The full instruction for the answer generator.
    """
    context_text = "\n\n".join(
        f"{idx}. {format_source_label(chunk)} {chunk.text}"
        for idx, chunk in enumerate(chunks, start=1)
    )

    conversation_context = ""
    if history:
        lines = [
            f"{'User' if turn.role == 'user' else 'Assistant'}: {turn.content}"
            for turn in history[-PROMPT_HISTORY_TURNS:]
        ]
        conversation_context = (
            "\n\nPrevious conversation:\n" + "\n".join(lines) + "\n\n" + FOLLOW_UP_NOTE
        )

    return (
        f"You are {assistant_name}, an expert AI assistant specializing in product "
        "information. Your goal is to provide 100% accurate answers based on the "
        "provided context.\n\n"
        "CRITICAL INSTRUCTIONS:\n"
        "1. ANSWER ACCURACY: Only use information that is explicitly stated in the "
        "Knowledge Base Context below. Do not make assumptions or infer information "
        "not present.\n"
        "2. CONVERSATION CONTEXT: If the user asks follow-up questions (like "
        "\"what's the category?\", \"tell me the price\", \"what about features?\", "
        "etc.), they are referring to the product/topic from the previous "
        "conversation. Use the conversation history to understand what they're "
        "asking about.\n"
        "3. COMPLETE ANSWERS: Provide complete, detailed answers. If multiple "
        "pieces of information are relevant, include all of them.\n"
        "4. PRODUCT-SPECIFIC: When answering about products, include all relevant "
        "details: name, category, price, features, specifications, etc. from the "
        "context.\n"
        "5. UNCERTAINTY: If the exact information is not in the context, say "
        '"Based on the available information, [partial answer]. However, '
        '[specific detail] is not available in my knowledge base."\n'
        "6. FORMAT: Be friendly, professional, and comprehensive. Structure your "
        "answer clearly.\n\n"
        f"Knowledge Base Context:\n{context_text}{conversation_context}\n\n"
        f"Current User Question:\n{query}\n\n"
        "Provide a complete, accurate answer based ONLY on the Knowledge Base "
        "Context above:"
    )

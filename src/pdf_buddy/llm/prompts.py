ANSWER_PROMPT = """You are a helpful assistant that answers questions based on PDF documents.

PDF Document: "{name}"
PDF Content (truncated if long):
{content}

User Question: "{question}"

Please provide a helpful answer based ONLY on the PDF content above.
If the information is not in the PDF, say "The PDF doesn't contain information about this."
If the PDF has multiple relevant points, summarize them.
Include page numbers if mentioned in the content (e.g., [Page X]).
Keep your answer concise but informative."""


def build_answer_prompt(question: str, content: str, name: str) -> str:
    return ANSWER_PROMPT.format(name=name, content=content, question=question)

QUERY_LABEL = "Pergunta do usuário:"

RESPONSE_INSTRUCTIONS = """Instruções:
- Baseie sua resposta principalmente no contexto fornecido
- Se a informação não estiver no contexto, indique isso claramente
- Mantenha a resposta precisa e útil
- Use markdown para formatação quando apropriado

Resposta:"""


def build_prompt(query: str, context: str, system_prompt: str) -> str:
    """Compose the system-role instruction sent to the language model.

    Order is fixed: system prompt, blank line, context, blank line,
    labelled user query, response instructions.
    """
    return f"{system_prompt}\n\n{context}\n\n{QUERY_LABEL} {query}\n\n{RESPONSE_INSTRUCTIONS}"


def build_messages(query: str, context: str, system_prompt: str) -> list[dict]:
    """OpenAI-format messages: composed prompt as system, raw query as user."""
    return [
        {"role": "system", "content": build_prompt(query, context, system_prompt)},
        {"role": "user", "content": query},
    ]

"""
JSON Schema definitions for Structured Output

使用 Gemini responseSchema 限制模型回傳格式（減少 thinking 或說明文字混入）
"""

from app.shared.category_resolver import allowed_categories


def build_response_schema() -> dict:
    """Schema covering both accepted shapes (bookkeeping / other)."""
    return {
        "type": "object",
        "properties": {
            "intent": {
                "type": "string",
                "enum": ["bookkeeping", "other"],
                "description": "User intent type",
            },
            "entry": {
                "type": "object",
                "properties": {
                    "date": {
                        "type": "string",
                        "description": "YYYY-MM-DD",
                    },
                    "category": {
                        "type": "string",
                        "enum": list(allowed_categories()),
                    },
                    "amount": {
                        "type": "number",
                    },
                    "memo": {
                        "type": "string",
                    },
                },
                "required": ["date", "category", "amount"],
            },
            "reply": {
                "type": "string",
                "description": "Short human-like reply for the user",
            },
        },
        "required": ["intent", "reply"],
    }

# app/llm/api/docs.py
"""Static description of the public developer endpoint, served at /api/docs."""


def public_api_docs(virtual_model: str, app_name: str, max_requests: int, window_seconds: int) -> dict:
    example_request = {
        "message": "Generate technical documentation",
        "model": virtual_model,
        "temperature": 0.7,
        "max_tokens": 2000,
        "system_prompt": "You are a highly tunable AI assistant.",
    }
    return {
        "name": f"{app_name} API",
        "version": "1.0.0",
        "description": "Public chat completion API. No API key required for basic usage.",
        "authentication": "none",
        "rate_limit": f"{max_requests} requests per {window_seconds // 60} minutes per IP address",
        "endpoints": [
            {
                "path": "/api/v1/chat",
                "method": "POST",
                "content_type": "application/json",
                "request": {
                    "message": "string (required)",
                    "model": f"string (optional, default '{virtual_model}')",
                    "temperature": "number 0-2 (optional, default 0.7)",
                    "max_tokens": "integer 1-4096 (optional, default 2000)",
                    "system_prompt": "string (optional)",
                },
                "response": {
                    "success": True,
                    "response": "string",
                    "model": virtual_model,
                    "provider": "string",
                    "usage": {"prompt_tokens": 50, "completion_tokens": 100, "total_tokens": 150},
                },
                "error_response": {
                    "success": False,
                    "error": "string",
                    "details": "string",
                },
                "example": example_request,
            }
        ],
    }

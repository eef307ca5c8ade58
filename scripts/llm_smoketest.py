#!/usr/bin/env python3
"""
LLM Smoketest - Checks the chat-completion provider and runs a tiny prompt.

Usage:
    python scripts/llm_smoketest.py

Environment variables:
    LLM_API_BASE (default: https://api.openai.com/v1)
    LLM_API_KEY or OPENAI_API_KEY
    LLM_MODEL (default: gpt-4o)

Exit codes:
    0 - OK (provider reachable and model responds)
    1 - FAIL (no key, provider unreachable, or request error)
    2 - DEGRADED (provider reachable but model not listed)
"""

import sys
import os
import time

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from smartcrm import config
from smartcrm.agents.llm_gateway import ChatCompletionClient, LLMError, ModelNotFoundError


def main():
    config.print_config()
    for error in config.validate():
        print(f"  CONFIG: {error}")
    print()
    print("LLM SMOKETEST")
    print()

    client = ChatCompletionClient()

    print("[1/2] Health check...")
    health = client.health_check()

    if not health["healthy"]:
        print(f"  FAIL: {health.get('error', 'Unknown error')}")
        print()
        print("Troubleshooting:")
        print("  1. Set LLM_API_KEY (or OPENAI_API_KEY)")
        print(f"  2. Is the base URL correct? Current: {client.api_base}")
        print("  3. Set LLM_API_BASE for an OpenAI-compatible proxy if needed")
        return 1

    print("  OK: provider reachable")
    print(f"  Models: {', '.join(health['models'][:5])}")

    if not health["model_available"]:
        print(f"  WARN: {health['error']}")
        return 2

    print(f"  OK: Model '{client.model}' available")

    print()
    print("[2/2] Test prompt...")
    start = time.time()
    try:
        result = client.generate(
            prompt="Reply with exactly: LLM_OK",
            temperature=0.0,
            max_tokens=20,
        )
    except ModelNotFoundError as e:
        print(f"  FAIL: {e}")
        return 2
    except LLMError as e:
        print(f"  FAIL: {e}")
        return 1

    response = result["response"].strip()
    print(f"  Response: {response}")
    print(f"  Model: {result['model']}")
    print(f"  Time: {time.time() - start:.1f}s")
    print(f"  Tokens: {result.get('total_tokens', '?')}")
    print()
    if "LLM_OK" in response.upper():
        print("OK - LLM is working")
    else:
        print(f"OK - LLM responded (content: '{response[:50]}')")
    return 0


if __name__ == "__main__":
    sys.exit(main())

# Copyright 2025 Google LLC
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
# ==============================================================================

import time
import logging

import httpx
from google import genai
from google.genai import errors as genai_errors
from google.genai import types

from gatekeeper.errors import TransportError, UpstreamError

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "gemini-2.5-flash"
QUERY_RESPONSE_MAX_OUTPUT_TOKENS = 4000


class GeminiInvalidResponseException(Exception):
    pass


def call_predict(
    query: str,
    api_key: str,
    model: str = DEFAULT_MODEL,
    temperature: float = 0.7,
    response_mime_type: str | None = "application/json",
) -> str:
    """
    Calls Gemini with a text prompt and returns the raw response text.

    Raises:
        UpstreamError: Gemini answered with an error status (bad key, quota...).
        TransportError: Gemini could not be reached.
        GeminiInvalidResponseException: The response carried no text.
    """
    client = genai.Client(api_key=api_key)
    start_time = time.time()
    truncated_query = (query[:200] + "...") if len(query) > 200 else query
    logger.info("Calling Gemini %s, prompt: '%s'", model, truncated_query)

    try:
        response = client.models.generate_content(
            model=model,
            contents=query,
            config=types.GenerateContentConfig(
                temperature=temperature,
                max_output_tokens=QUERY_RESPONSE_MAX_OUTPUT_TOKENS,
                response_mime_type=response_mime_type,
            ),
        )
    except genai_errors.APIError as exc:
        logger.error("Gemini returned %s: %s", exc.code, exc.message)
        raise UpstreamError(
            f"Gemini request failed: {exc.message}", upstream_status=exc.code
        ) from exc
    except httpx.HTTPError as exc:
        logger.error("Gemini unreachable: %s", exc)
        raise TransportError(f"Gemini request failed: {exc}") from exc

    logger.info("Gemini call took: %.2fs", time.time() - start_time)
    if not response.text:
        raise GeminiInvalidResponseException()
    return response.text

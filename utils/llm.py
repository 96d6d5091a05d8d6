"""Claude API client for the generative stages."""

import logging
import os
import re
import time

import anthropic

from config.defaults import get_setting
from core.errors import ExternalServiceError

logger = logging.getLogger(__name__)


def get_client(timeout=None):
    """Return an Anthropic client. Raises if no API key is set."""
    api_key = os.environ.get("ANTHROPIC_API_KEY")
    if not api_key:
        raise ExternalServiceError(
            "anthropic",
            "ANTHROPIC_API_KEY environment variable is not set. "
            "Get a key at https://console.anthropic.com/ and run:\n"
            "  export ANTHROPIC_API_KEY='your-key-here'",
        )
    if timeout is None:
        timeout = get_setting("llm_timeout")
    return anthropic.Anthropic(api_key=api_key, timeout=timeout)


def call_llm(system_prompt, user_message, client=None, model=None, max_tokens=None):
    """Call Claude and return the raw completion text.

    Transport errors get one retry after a short pause; the second failure
    is raised as ExternalServiceError. A response cut off by the token
    limit is returned with a truncation marker appended.
    """
    client = client or get_client()
    model = model or get_setting("model")
    max_tokens = max_tokens or get_setting("max_tokens")

    for attempt in range(2):
        try:
            # Use streaming to avoid SDK timeout for large max_tokens
            text = ""
            with client.messages.stream(
                model=model,
                max_tokens=max_tokens,
                system=system_prompt,
                messages=[{"role": "user", "content": user_message}],
            ) as stream:
                for chunk in stream.text_stream:
                    text += chunk
                response_msg = stream.get_final_message()

            if response_msg.stop_reason == "max_tokens":
                logger.warning("Completion hit the token limit (%d)", max_tokens)
                text += "\n\n<!-- TRUNCATED: Response hit token limit -->"
            return text

        except anthropic.APIError as e:
            if attempt == 0:
                logger.warning("Claude call failed (%s); retrying once", e)
                time.sleep(2)
                continue
            raise ExternalServiceError("anthropic", str(e)) from e


class AnthropicService:
    """Generative text service: invoke(prompt) -> completion text.

    No conversation state is kept between calls.
    """

    def __init__(self, system_prompt="", client=None, model=None, max_tokens=None):
        self.system_prompt = system_prompt or (
            "You are an expert React developer working inside an automated "
            "feature pipeline. Follow the requested output format exactly."
        )
        self._client = client
        self.model = model
        self.max_tokens = max_tokens

    @property
    def client(self):
        if self._client is None:
            self._client = get_client()
        return self._client

    def invoke(self, prompt):
        started = time.time()
        text = call_llm(self.system_prompt, prompt, client=self.client,
                        model=self.model, max_tokens=self.max_tokens)
        logger.debug("Claude call took %.1fs (%d chars out)", time.time() - started, len(text))
        return text


def parse_files(response):
    """Extract (filename, content) pairs from fenced code blocks.

    Handles multiple formats Claude may use:
        ```filename.js           (filepath as language tag)
        ```jsx Counter.jsx       (language then filepath)
        ```css                   (language tag, filename in first comment line)
        /* Counter.css */
        ...
        ```

    Returns list of (relative_path, content) tuples.
    """
    files = []
    pattern = re.compile(
        r"```(\S+?)(?:[ \t]+(\S+?))?\n(.*?)```",
        re.DOTALL,
    )

    # Pattern to detect a filepath in a comment on the first line
    comment_path_re = re.compile(
        r"^(?:#|//|/\*|<!--)\s*(.+?\.\w+)\s*(?:\*/|-->)?\s*\n",
    )

    for match in pattern.finditer(response):
        tag = match.group(1)        # e.g. "Counter.js" or "jsx" or "css"
        second = match.group(2)     # e.g. "Counter.jsx" after "jsx" (if present)
        content = match.group(3)

        filename = None

        # Case 1: tag itself is a filepath (contains . and /)
        if "/" in tag and "." in tag:
            filename = tag
        # Case 2: second token is a filepath (```jsx Counter.jsx)
        elif second and "." in second:
            filename = second
        # Case 3: tag is a bare filename with extension (```Counter.css)
        elif "." in tag and "/" not in tag:
            filename = tag
        # Case 4: tag is just a language, check first line for a filepath comment
        else:
            cm = comment_path_re.match(content)
            if cm:
                filename = cm.group(1).strip()
                content = content[cm.end():]

        if not filename:
            continue

        if content.endswith("\n"):
            content = content[:-1]

        files.append((filename, content))
    return files

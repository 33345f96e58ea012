"""
Project Name Service - short project names from the user's creation prompt
"""
import asyncio
import logging

from openai import OpenAI

from config.settings import settings, DEFAULT_PROJECT_NAME, MAX_PROJECT_NAME_LENGTH

logger = logging.getLogger(__name__)

NAME_PROMPT_TEMPLATE = (
    "Generate a concise and meaningful project name (2-4 words maximum) that reflects "
    "the main purpose or theme of the project based on user's creation prompt. "
    "Generate only the project name, nothing else. Keep it short and descriptive. "
    "User's creation prompt: <prompt>{prompt}</prompt>"
)
MAX_NAME_TOKENS = 50


class ProjectNameService:
    """Service class for language-model project naming with a fixed fallback"""

    def __init__(self):
        self.api_key = settings.openai_api_key
        self.base_url = settings.openai_base_url
        self.model = settings.project_name_model

    async def generate_name(self, prompt: str) -> str:
        """
        Ask the model for a project name.

        Never raises: a missing key, any API failure, or a name that is empty
        or longer than MAX_PROJECT_NAME_LENGTH all yield DEFAULT_PROJECT_NAME.
        """
        if not self.api_key:
            logger.warning("OpenAI API key not configured - using default project name")
            return DEFAULT_PROJECT_NAME

        try:
            client = OpenAI(api_key=self.api_key, base_url=self.base_url)
            response = await asyncio.to_thread(
                client.chat.completions.create,
                model=self.model,
                messages=[
                    {"role": "user", "content": NAME_PROMPT_TEMPLATE.format(prompt=prompt)},
                ],
                max_tokens=MAX_NAME_TOKENS,
            )

            generated_name = (response.choices[0].message.content or "").strip()
            if 0 < len(generated_name) <= MAX_PROJECT_NAME_LENGTH:
                return generated_name

            logger.warning(f"Generated project name rejected (length {len(generated_name)}) - using default")
            return DEFAULT_PROJECT_NAME
        except Exception as e:
            logger.error(f"Error generating project name: {e}")
            return DEFAULT_PROJECT_NAME

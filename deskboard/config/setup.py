from cachetools import cached
from dotenv import find_dotenv, load_dotenv

from deskboard.config.logger import logging_setup
from deskboard.config.settings import apply_env_settings


@cached(cache={})
def setup():
    """
    One-time setup of environment, settings and logging. Idempotent.
    """

    env_setup()

    apply_env_settings()

    logging_setup()


def env_setup() -> str | None:
    dotenv_path = find_dotenv(usecwd=True)
    if dotenv_path:
        load_dotenv(dotenv_path)
    return dotenv_path

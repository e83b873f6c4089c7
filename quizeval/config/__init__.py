from quizeval.config.settings import settings, get_bool_env, get_int_env

__all__ = ["settings", "get_bool_env", "get_int_env"]

from .script_result import ScriptResult, generate_script_id


__all__ = [
    "ScriptResult",
    "generate_script_id",
]

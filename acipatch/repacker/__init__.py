from .repacker import Repacker, EntryAction, RunState, MANIFEST_NAME

__all__ = ["Repacker", "EntryAction", "RunState", "MANIFEST_NAME"]

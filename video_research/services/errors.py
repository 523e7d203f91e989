from __future__ import annotations


class VideoResearchError(Exception):
    pass


class MissingCredentialError(VideoResearchError):
    def __init__(self, service: str) -> None:
        super().__init__(f"Please add {service} API token in Settings")
        self.service = service


class ProviderRequestError(VideoResearchError):
    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class ProviderNetworkError(ProviderRequestError):
    pass


class ProviderRunError(VideoResearchError):
    def __init__(self, state: str, *, run_id: str | None = None) -> None:
        super().__init__(f"Apify run {state.lower()}")
        self.state = state
        self.run_id = run_id


class ProviderTimeoutError(VideoResearchError):
    pass


class TranscriptionRequestError(VideoResearchError):
    pass


class NoTranscriptError(TranscriptionRequestError):
    pass


class InvalidInputError(ValueError):
    """User-correctable input: blank topic, empty selection, unknown setting."""

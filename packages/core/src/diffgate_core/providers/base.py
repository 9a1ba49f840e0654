"""Base evaluator implementing the Template Method pattern.

All providers share the same evaluation flow:
    evaluate() → credential check
               → _call_with_timeout() → _call_api()   ← only this differs per provider
               → EvaluationResponse (text or failure)

Subclasses implement two things only:
  - __init__: validate and store the SDK client
  - _call_api: make one raw API call and return the text response

evaluate() never raises. Missing credentials, timeouts and every other
remote failure come back as an EvaluationFailure so the hook can fail open.
"""

from __future__ import annotations

import concurrent.futures
import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING

from diffgate_core.errors import EvaluatorTimeoutError, MissingCredentialError, RemoteServiceError

if TYPE_CHECKING:
    from diffgate_core.profiles import ReviewProfile
    from diffgate_core.prompts import EvaluationRequest

logger = logging.getLogger(__name__)

FAILURE_MISSING_CREDENTIAL = "missing_credential"
FAILURE_TIMEOUT = "timeout"
FAILURE_OTHER = "other"


@dataclass(frozen=True)
class EvaluationFailure:
    kind: str  # "missing_credential" | "timeout" | "other"
    message: str


@dataclass(frozen=True)
class EvaluationResponse:
    text: str | None = None
    failure: EvaluationFailure | None = None
    elapsed_seconds: float = 0.0
    model: str | None = None  # model identifier actually sent to the service

    @property
    def ok(self) -> bool:
        return self.failure is None and self.text is not None


class BaseEvaluator(ABC):
    def __init__(self, api_key: str | None):
        self.api_key = api_key

    # ------------------------------------------------------------------ #
    # Public interface                                                     #
    # ------------------------------------------------------------------ #

    def evaluate(self, request: EvaluationRequest) -> EvaluationResponse:
        """Send one request and return the raw text or a failure value."""
        start = time.monotonic()
        model = self.resolve_model(request.profile)
        try:
            if not self.api_key:
                raise MissingCredentialError(f"{self.__class__.__name__}: no API key configured")
            text = self._call_with_timeout(request)
        except MissingCredentialError as e:
            return self._failure(FAILURE_MISSING_CREDENTIAL, e, start, model)
        except EvaluatorTimeoutError as e:
            return self._failure(FAILURE_TIMEOUT, e, start, model)
        except RemoteServiceError as e:
            return self._failure(FAILURE_OTHER, e, start, model)
        return EvaluationResponse(text=text, elapsed_seconds=time.monotonic() - start, model=model)

    def resolve_model(self, profile: ReviewProfile) -> str:
        return profile.model

    # ------------------------------------------------------------------ #
    # Abstract: implement in each provider                                #
    # ------------------------------------------------------------------ #

    @abstractmethod
    def _call_api(
        self,
        system_prompt: str,
        user_prompt: str,
        model: str,
        max_tokens: int,
        temperature: float,
        timeout: float,
    ) -> str:
        """Make a single API call and return the raw text response.

        This is the only method subclasses must implement. It should raise
        on failure; _call_with_timeout converts the exception.
        """

    # ------------------------------------------------------------------ #
    # Shared implementations                                               #
    # ------------------------------------------------------------------ #

    def _call_with_timeout(self, request: EvaluationRequest) -> str:
        """Race _call_api against the profile's timeout.

        The call runs on a worker thread. If it has not finished in time the
        thread is abandoned rather than joined, and EvaluatorTimeoutError is
        raised. Any exception from the call itself becomes RemoteServiceError.
        """
        profile = request.profile
        timeout = float(profile.timeout_seconds)
        executor = concurrent.futures.ThreadPoolExecutor(max_workers=1, thread_name_prefix="diffgate-eval")
        future = executor.submit(
            self._call_api,
            request.system_prompt,
            request.prompt,
            self.resolve_model(profile),
            profile.max_tokens,
            profile.temperature,
            timeout,
        )
        try:
            text = future.result(timeout=timeout)
        except concurrent.futures.TimeoutError:
            future.cancel()
            raise EvaluatorTimeoutError(timeout) from None
        except RemoteServiceError:
            raise
        except Exception as e:
            if _looks_like_auth_error(e):
                raise MissingCredentialError(str(e)) from e
            raise RemoteServiceError(f"{e.__class__.__name__}: {e}") from e
        finally:
            executor.shutdown(wait=False)

        if text is None:
            raise RemoteServiceError("Evaluation service returned an empty response")
        return text

    def _failure(self, kind: str, error: Exception, start: float, model: str) -> EvaluationResponse:
        logger.warning("%s evaluation failed (%s): %s", self.__class__.__name__, kind, error)
        return EvaluationResponse(
            failure=EvaluationFailure(kind=kind, message=str(error)),
            elapsed_seconds=time.monotonic() - start,
            model=model,
        )


def _looks_like_auth_error(error: Exception) -> bool:
    # Both SDKs raise AuthenticationError; matching by name keeps this module SDK-free.
    return error.__class__.__name__ == "AuthenticationError" or "api key" in str(error).lower()

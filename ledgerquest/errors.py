"""Error taxonomy for the turn pipeline.

  | Class                     | Raised by                 | Handling                         |
  |---------------------------|---------------------------|----------------------------------|
  | TransientExternalError    | ledger / oracle transport | retried with linear backoff      |
  | RetriesExhaustedError     | executor                  | turn aborted, logged             |
  | TerminalExternalError     | ledger business rules     | never retried, turn aborted      |
  | PreflightError            | executor pre-flight       | never retried, nothing submitted |
  | MalformedResponseError    | oracle reply parsing      | counted as a failed attempt      |
  | PersistenceError          | JsonFileStore.write_all   | logged, in-memory state kept     |

Guardrail substitutions are NOT errors; see models.GuardrailOverride.
"""


class LedgerQuestError(Exception):
    """Base class for every error raised by ledgerquest."""


class ExternalError(LedgerQuestError):
    """A collaborator outside the process (ledger, oracle) failed."""


class TransientExternalError(ExternalError):
    """Network hiccup, timeout or 5xx. Safe to retry."""


class RetriesExhaustedError(TransientExternalError):
    """A transient failure outlived the configured retry budget."""

    def __init__(self, message: str, *, attempts: int, last_error: BaseException | None = None) -> None:
        super().__init__(message)
        self.attempts = attempts
        self.last_error = last_error


class TerminalExternalError(ExternalError):
    """Funds, nonce or game-rule rejection. Retrying cannot help."""


class PreflightError(TerminalExternalError):
    """Live-mode pre-flight check failed; no action was submitted."""


class MalformedResponseError(LedgerQuestError):
    """The oracle replied, but the reply failed validation."""


class PersistenceError(LedgerQuestError):
    """Durable snapshot could not be written."""

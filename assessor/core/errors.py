"""Error taxonomy for the assessment pipeline.

Every stage of a request (LLM call, JSON extraction, persistence) raises one of
these. Routes never format them for the client: an app-level handler logs the
cause and answers with a static message.
"""


class AssessorError(Exception):
    """Base class for pipeline failures."""

    public_message = "Something went wrong. Try again."


class UpstreamAIError(AssessorError):
    """Network, HTTP or envelope failure talking to the LLM provider."""

    public_message = "AI is tired. Try again."


class ExtractionError(AssessorError):
    """The model reply held no usable JSON, or the JSON broke its contract."""

    public_message = "AI returned an unreadable answer. Try again."


class PersistenceError(AssessorError):
    """A store write failed; nothing from the batch was kept."""

    public_message = "Could not save your results. Try again."

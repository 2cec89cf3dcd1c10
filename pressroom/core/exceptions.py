"""Custom exception types for domain and API layers."""


class AppError(Exception):
    """Base app exception."""


class NotFoundError(AppError):
    """A workflow, step or template does not exist."""


class WorkflowNotFoundError(NotFoundError):
    def __init__(self, workflow_id: str) -> None:
        super().__init__(f"Workflow not found: {workflow_id}")
        self.workflow_id = workflow_id


class StepNotFoundError(NotFoundError):
    def __init__(self, step_id: str) -> None:
        super().__init__(f"Step not found: {step_id}")
        self.step_id = step_id


class TemplateNotFoundError(NotFoundError):
    def __init__(self, key: str) -> None:
        super().__init__(f"Template not found: {key}")
        self.key = key


class TemplateValidationError(AppError):
    """A template definition violates a structural rule."""


class DependencyUnmetError(AppError):
    """Activation requested for a step whose dependencies are not all complete."""

    def __init__(self, step_name: str, unmet: list[str]) -> None:
        super().__init__(f"Step '{step_name}' has unmet dependencies: {', '.join(unmet)}")
        self.step_name = step_name
        self.unmet = unmet


class InvariantViolationError(AppError):
    """Workflow state that the state machine can never legitimately reach."""


class ActiveWorkflowExistsError(AppError):
    """A thread already has an active workflow."""

    def __init__(self, thread_id: str, workflow_id: str) -> None:
        super().__init__(f"Thread {thread_id} already has active workflow {workflow_id}")
        self.thread_id = thread_id
        self.workflow_id = workflow_id


class ConcurrentStepUpdateError(AppError):
    """Another writer moved the workflow's current step first."""


class ProtocolParseError(AppError):
    """Completion collaborator reply could not be parsed into the dialog contract."""

    def __init__(self, message: str, raw: str = "") -> None:
        super().__init__(message)
        self.raw = raw


class CompletionError(AppError):
    """Completion collaborator call failed."""


class StepStateError(AppError):
    """Requested step transition is not allowed from the step's current status."""

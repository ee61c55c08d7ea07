from .workspaces import (
    Workspace as Workspace,
    ApiKey as ApiKey,
)

from .traces import (
    SessionModel as SessionModel,
    TraceModel as TraceModel,
    SpanModel as SpanModel,
)
from .signals import Signal as Signal, TestSignal as TestSignal
from .ab_tests import (
    ABTest as ABTest,
    Variant as Variant,
    Completion as Completion,
)
from .datasets import (
    Dataset as Dataset,
    DatasetVersion as DatasetVersion,
    Experiment as Experiment,
    ExperimentResult as ExperimentResult,
)

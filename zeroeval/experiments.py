"""
Experiments: run a task over every row of a dataset, score each output with
evaluators, and optionally push the results.

    def task(row):
        return answer(row["question"])

    def exact_match(row, output):
        return output == row["answer"]

    run = Experiment(dataset, task, [exact_match]).run()
    print(run.summary())
    run.push()
"""

import asyncio
import inspect
import json
import logging
from dataclasses import dataclass, field
from typing import Any, Callable

from zeroeval.client import get_client
from zeroeval.datasets import Dataset
from zeroeval.observability.decorators import span

logger = logging.getLogger(__name__)

Evaluator = Callable[[dict[str, Any], Any], Any]


def _resolve(value: Any) -> Any:
    if inspect.isawaitable(value):
        return asyncio.run(value)
    return value


def _jsonable(value: Any) -> Any:
    try:
        json.dumps(value)
        return value
    except (TypeError, ValueError):
        return repr(value)


def _evaluator_names(evaluators: list[Evaluator]) -> list[str]:
    """Score keys per evaluator; repeated names get a numeric suffix."""
    names = []
    counts: dict[str, int] = {}
    for evaluator in evaluators:
        name = getattr(evaluator, "__name__", type(evaluator).__name__)
        counts[name] = counts.get(name, 0) + 1
        names.append(name if counts[name] == 1 else f"{name}_{counts[name]}")
    return names


@dataclass
class ExperimentResult:
    row_index: int
    row: dict[str, Any]
    output: Any = None
    scores: dict[str, Any] = field(default_factory=dict)
    error: str | None = None
    trace_id: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "row_index": self.row_index,
            "row": _jsonable(self.row),
            "output": _jsonable(self.output),
            "scores": {key: _jsonable(value) for key, value in self.scores.items()},
            "error": self.error,
            "trace_id": self.trace_id,
        }


class ExperimentRun:
    def __init__(self, experiment: "Experiment", results: list[ExperimentResult]):
        self.experiment = experiment
        self.results = results
        self.experiment_id: str | None = None

    def summary(self) -> dict[str, float]:
        """Mean of every numeric or boolean score, per evaluator."""
        values: dict[str, list[float]] = {}
        for result in self.results:
            for key, score in result.scores.items():
                if isinstance(score, (bool, int, float)):
                    values.setdefault(key, []).append(float(score))
        return {key: sum(scores) / len(scores) for key, scores in values.items()}

    @property
    def errors(self) -> list[ExperimentResult]:
        return [result for result in self.results if result.error]

    def push(self, workspace_id: str | None = None) -> "ExperimentRun":
        experiment = self.experiment
        body: dict[str, Any] = {
            "name": experiment.name,
            "description": experiment.description,
            "results": [result.to_dict() for result in self.results],
        }
        if experiment.dataset.version is not None:
            body["dataset_name"] = experiment.dataset.name
            body["dataset_version"] = experiment.dataset.version

        client = get_client()
        response = client.request(
            "POST", client.workspace_path("experiments", workspace_id), json=body
        )
        self.experiment_id = response["experiment_id"]
        logger.info("Pushed experiment %s (%s)", experiment.name, self.experiment_id)
        return self


class Experiment:
    def __init__(
        self,
        dataset: Dataset,
        task: Callable[[dict[str, Any]], Any],
        evaluators: list[Evaluator] | None = None,
        name: str | None = None,
        description: str | None = None,
    ):
        self.dataset = dataset
        self.task = task
        self.evaluators = list(evaluators or [])
        self.evaluator_names = _evaluator_names(self.evaluators)
        self.name = name or f"{dataset.name}-{getattr(task, '__name__', 'task')}"
        self.description = description

    def _run_row(self, index: int, row: dict[str, Any]) -> ExperimentResult:
        result = ExperimentResult(row_index=index, row=row)
        with span(
            name=f"experiment.{self.name}",
            attributes={"experiment": self.name, "row_index": index},
            input_data=row,
        ) as current:
            result.trace_id = current.trace_id
            try:
                result.output = _resolve(self.task(row))
            except Exception as e:
                logger.warning(f"Task failed on row {index}: {e}")
                result.error = f"{type(e).__name__}: {e}"
                current.set_error(type(e).__name__, str(e))
                return result
            current.set_io(output_data=result.output)

            for evaluator, evaluator_name in zip(self.evaluators, self.evaluator_names):
                try:
                    result.scores[evaluator_name] = _resolve(evaluator(row, result.output))
                except Exception as e:
                    logger.warning(f"Evaluator {evaluator_name} failed on row {index}: {e}")
                    message = f"{evaluator_name}: {type(e).__name__}: {e}"
                    result.error = f"{result.error}; {message}" if result.error else message
            current.set_attributes({f"score.{key}": value for key, value in result.scores.items()})
        return result

    def run(self) -> ExperimentRun:
        results = [self._run_row(index, row) for index, row in enumerate(self.dataset)]
        run = ExperimentRun(self, results)
        logger.info(
            "Experiment %s finished: %d rows, %d with errors",
            self.name,
            len(results),
            len(run.errors),
        )
        return run

"""Base class for export steps.

Every step declares typed Input, Output, Config via Pydantic models.
This keeps each stage of the export independently runnable and testable,
lets the orchestrator validate what flows between stages,
and exposes JSON Schema introspection for every step.
"""

from __future__ import annotations

import time
import logging
from abc import ABC, abstractmethod
from typing import Generic, Optional, TypeVar, ClassVar

from pydantic import BaseModel

from .contracts import StepMeta
from .logging import DiagnosticsSink

InputT = TypeVar("InputT", bound=BaseModel)
OutputT = TypeVar("OutputT", bound=BaseModel)
ConfigT = TypeVar("ConfigT", bound=BaseModel)

logger = logging.getLogger(__name__)


class BaseStep(ABC, Generic[InputT, OutputT, ConfigT]):
    """Abstract base for export steps.

    Subclasses must:
    1. Define concrete Pydantic models for InputT, OutputT, ConfigT
    2. Set class variables: input_type, output_type, config_type
    3. Implement run() and validate_inputs()

    Example:
        class GeometryExportStep(BaseStep[GeometryInput, GeometryOutput, GeometryConfig]):
            input_type = GeometryInput
            output_type = GeometryOutput
            config_type = GeometryConfig

            def run(self, inputs: GeometryInput) -> GeometryOutput: ...
            def validate_inputs(self, inputs: GeometryInput) -> bool: ...

    ``log`` is the diagnostics sink the step and its helpers report to;
    it defaults to this module's logger.
    """

    name: ClassVar[str] = ""
    input_type: ClassVar[type[BaseModel]]
    output_type: ClassVar[type[BaseModel]]
    config_type: ClassVar[type[BaseModel]]

    def __init__(self, config: ConfigT, log: Optional[DiagnosticsSink] = None):
        self.config = config
        self.log = log if log is not None else logger
        self.last_meta: Optional[StepMeta] = None

    @abstractmethod
    def run(self, inputs: InputT) -> OutputT:
        """Execute this step. Returns output model."""
        ...

    @abstractmethod
    def validate_inputs(self, inputs: InputT) -> bool:
        """Check that the inputs can be exported. May raise a specific ExportError."""
        ...

    def execute(self, inputs: InputT) -> OutputT:
        """Run with logging, timing, and validation."""
        step_name = self.name or self.__class__.__name__
        self.log.info(f"[{step_name}] Validating inputs...")

        if not self.validate_inputs(inputs):
            raise ValueError(f"[{step_name}] Input validation failed")

        self.log.info(f"[{step_name}] Starting...")
        t0 = time.time()
        result = self.run(inputs)
        elapsed = time.time() - t0
        self.log.info(f"[{step_name}] Done in {elapsed:.1f}s")
        self.last_meta = StepMeta(
            step_name=step_name,
            elapsed_seconds=elapsed,
            params=self.config.model_dump(mode="json"),
        )
        return result

    @classmethod
    def get_input_schema(cls) -> dict:
        """Return JSON schema for inputs."""
        return cls.input_type.model_json_schema()

    @classmethod
    def get_output_schema(cls) -> dict:
        """Return JSON schema for outputs."""
        return cls.output_type.model_json_schema()

    @classmethod
    def get_config_schema(cls) -> dict:
        """Return JSON schema for config."""
        return cls.config_type.model_json_schema()

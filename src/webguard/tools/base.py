"""Base infrastructure for webguard tools.

This module provides the foundational classes for exposing search and fetch
to an agent orchestrator: tool results and parameter validation.
"""

import time
from abc import ABC, abstractmethod
from typing import Any, TypeVar, Generic

from pydantic import BaseModel, Field, ValidationError

from webguard.errors import WebAccessError


# Type variable for tool parameters
TParams = TypeVar("TParams", bound=BaseModel)


class ToolResult(BaseModel):
    """Result from tool execution.

    Contains the execution result, success status, error information,
    and metadata about the execution.
    """

    success: bool = Field(..., description="Whether the tool executed successfully")
    data: Any = Field(default=None, description="The actual result data")
    error: str | None = Field(default=None, description="Error message if failed")
    metadata: dict[str, Any] = Field(
        default_factory=dict,
        description="Execution metadata (time, error type, etc.)",
    )

    @classmethod
    def success_result(cls, data: Any, **metadata: Any) -> "ToolResult":
        """Create a successful result.

        Args:
            data: The result data
            **metadata: Additional metadata

        Returns:
            ToolResult: Successful tool result
        """
        return cls(success=True, data=data, error=None, metadata=metadata)

    @classmethod
    def error_result(cls, error: str, **metadata: Any) -> "ToolResult":
        """Create an error result.

        Args:
            error: Error message
            **metadata: Additional metadata

        Returns:
            ToolResult: Error tool result
        """
        return cls(success=False, data=None, error=error, metadata=metadata)

    @classmethod
    def from_error(cls, error: WebAccessError, **metadata: Any) -> "ToolResult":
        """Create an error result that records what kind of failure occurred.

        ``blocked`` is True when the source was refused for safety, so the
        caller can tell it apart from a temporary failure.

        Args:
            error: The search or fetch error
            **metadata: Additional metadata

        Returns:
            ToolResult: Error tool result
        """
        return cls.error_result(
            error=str(error),
            error_type=type(error).__name__,
            blocked=error.blocked,
            **metadata,
        )

    @property
    def blocked(self) -> bool:
        """Whether the failure was a safety refusal."""
        return bool(self.metadata.get("blocked", False))

    def __str__(self) -> str:
        """String representation of the result."""
        if self.success:
            return f"Success: {self.data}"
        else:
            return f"Error: {self.error}"


class BaseTool(ABC, Generic[TParams]):
    """Abstract base class for all webguard tools.

    Subclasses must implement execute(), the actual tool logic.

    Type Parameters:
        TParams: Pydantic model defining the tool's parameters
    """

    # Class attributes (must be set in subclasses)
    name: str
    description: str
    parameters_schema: type[BaseModel]

    def __init__(self):
        """Initialize the tool.

        Validates that required class attributes are set.
        """
        # Validate required attributes
        required_attrs = ["name", "description", "parameters_schema"]
        for attr in required_attrs:
            if not hasattr(self, attr):
                raise ValueError(
                    f"Tool must define '{attr}' class attribute. "
                    f"Subclass {self.__class__.__name__} is missing it."
                )

        # Validate parameters_schema is a Pydantic model
        if not issubclass(self.parameters_schema, BaseModel):
            raise ValueError(
                f"parameters_schema must be a Pydantic BaseModel subclass, "
                f"got {type(self.parameters_schema)}"
            )

    @abstractmethod
    async def execute(self, params: TParams) -> ToolResult:
        """Execute the tool with validated parameters.

        Args:
            params: Validated parameters conforming to parameters_schema

        Returns:
            ToolResult: Result of the execution
        """
        pass

    def validate_params(self, raw_params: dict[str, Any]) -> BaseModel:
        """Parse and validate raw parameters.

        Args:
            raw_params: Raw parameter dictionary

        Returns:
            BaseModel: Validated parameters

        Raises:
            ValidationError: If parameters are invalid
        """
        return self.parameters_schema(**raw_params)

    def to_schema(self) -> dict[str, Any]:
        """Describe this tool as a function-calling definition.

        Returns:
            dict: Name, description and JSON Schema of the parameters
        """
        parameters = self.parameters_schema.model_json_schema()
        parameters.pop("title", None)
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": parameters,
            },
        }

    async def run(
        self,
        raw_params: dict[str, Any],
        track_time: bool = True,
    ) -> ToolResult:
        """Run the tool with parameter validation and error handling.

        This is the main entry point for tool execution. It handles:
        - Parameter validation
        - Execution timing
        - Conversion of search/fetch errors into error results

        Args:
            raw_params: Raw parameter dictionary
            track_time: Whether to track execution time

        Returns:
            ToolResult: Execution result
        """
        start_time = time.time() if track_time else None

        try:
            # Validate parameters
            validated_params = self.validate_params(raw_params)

            # Execute the tool
            result = await self.execute(validated_params)

            # Add execution time if tracking
            if track_time and start_time is not None:
                execution_time = time.time() - start_time
                result.metadata["execution_time"] = execution_time

            return result

        except ValidationError as e:
            # Parameter validation failed
            return ToolResult.error_result(
                error=f"Parameter validation failed: {e}",
                error_type="InvalidInputError",
                blocked=False,
                execution_time=time.time() - start_time if start_time else None,
            )

        except WebAccessError as e:
            return ToolResult.from_error(
                e,
                execution_time=time.time() - start_time if start_time else None,
            )

    def __repr__(self) -> str:
        """String representation of the tool."""
        return (
            f"<{self.__class__.__name__} "
            f"name='{self.name}'>"
        )

"""
Pydantic models for the Block Grader system.

Defines the typed program representation produced at the parsing
boundary, the projections derived from it during one evaluation, and the
result returned to callers.
"""

from enum import Enum
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Program documents
# ---------------------------------------------------------------------------


class LiteralInput(BaseModel):
    """A shadow/default value attached directly to an input slot."""

    kind: Literal["literal"] = "literal"
    value: Any = Field(default=None, description="Normalized literal value")


class ExpressionInput(BaseModel):
    """A reporter block plugged into an input slot."""

    kind: Literal["expression"] = "expression"
    block_id: str = Field(..., description="Id of the reporter block")


class SubstackInput(BaseModel):
    """The nested body of a control block."""

    kind: Literal["substack"] = "substack"
    block_id: str = Field(..., description="Id of the first block of the body")


InputValue = Annotated[
    Union[LiteralInput, ExpressionInput, SubstackInput],
    Field(discriminator="kind"),
]


class FieldValue(BaseModel):
    """
    A block field, e.g. a dropdown choice or a variable reference.

    Attributes:
        value: Display value (variable name, key name, ...).
        ref_id: Internal id for reference fields such as variables or broadcasts.
    """

    value: Any = Field(default=None, description="Display value")
    ref_id: str | None = Field(default=None, description="Internal id of the referenced entity")


class Block(BaseModel):
    """
    One node of a target's block graph.

    Attributes:
        id: Block id (key in the target's block map).
        opcode: String tag naming the block semantics.
        inputs: Slot name to typed input value.
        fields: Field name to field value.
        next: Id of the following block in the chain.
        parent: Id of the enclosing or preceding block.
        top_level: Whether the block starts a script.
        shadow: Whether the block is a menu/shadow block.
    """

    id: str = Field(..., description="Block id")
    opcode: str = Field(..., description="Block semantics tag")
    inputs: dict[str, InputValue] = Field(default_factory=dict, description="Input slots")
    fields: dict[str, FieldValue] = Field(default_factory=dict, description="Fields")
    next: str | None = Field(default=None, description="Next block id")
    parent: str | None = Field(default=None, description="Parent block id")
    top_level: bool = Field(default=False, description="Whether this block starts a script")
    shadow: bool = Field(default=False, description="Whether this is a shadow block")


class VariableRecord(BaseModel):
    """A declared variable or list."""

    id: str = Field(..., description="Variable id")
    name: str = Field(..., description="Declared name")
    value: Any = Field(default=None, description="Initial value")
    is_list: bool = Field(default=False, description="Whether this is a list")


class Target(BaseModel):
    """A sprite or the stage."""

    name: str = Field(..., description="Target name")
    is_stage: bool = Field(default=False, description="Whether this target is the stage")
    variables: dict[str, VariableRecord] = Field(default_factory=dict, description="Declared variables and lists")
    blocks: dict[str, Block] = Field(default_factory=dict, description="Blocks keyed by id")


class Program(BaseModel):
    """A parsed project manifest."""

    targets: list[Target] = Field(default_factory=list, description="Stage and sprites")


# ---------------------------------------------------------------------------
# Indexed projections
# ---------------------------------------------------------------------------


class IndexedBlock(BaseModel):
    """
    A block with its inputs resolved.

    Literal slots hold values, expression slots hold the resolved reporter
    tree and substack slots hold the flattened body.
    """

    id: str
    opcode: str
    literals: dict[str, Any] = Field(default_factory=dict)
    expressions: dict[str, "IndexedBlock"] = Field(default_factory=dict)
    substacks: dict[str, list["IndexedBlock"]] = Field(default_factory=dict)
    fields: dict[str, FieldValue] = Field(default_factory=dict)
    nesting_context: str | None = Field(default=None, description="Opcode of the enclosing control block")


class Script(BaseModel):
    """A top-level chain of blocks within one target."""

    target_name: str
    index: int = Field(..., ge=0, description="Position of the script within its target")
    blocks: list[IndexedBlock] = Field(default_factory=list)

    @property
    def key(self) -> str:
        return f"{self.target_name}#{self.index}"


class IndexedProgram(BaseModel):
    """
    All scripts of a program plus its variable declarations.

    Attributes:
        scripts: Indexed scripts, in target then script order.
        variables: Declared variables of all indexed targets, in declaration order.
        skipped_targets: Names of targets dropped because their block graph is malformed.
    """

    scripts: list[Script] = Field(default_factory=list)
    variables: dict[str, VariableRecord] = Field(default_factory=dict)
    skipped_targets: list[str] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Variable profiling and mapping
# ---------------------------------------------------------------------------


class UsageKind(str, Enum):
    WRITE = "write"
    DELTA = "delta"
    READ = "read"


class UsageEvent(BaseModel):
    """One use of a variable by a block."""

    kind: UsageKind
    opcode: str
    position_hint: int = Field(..., ge=0, description="Traversal order of the using block")
    value: Any = Field(default=None, description="Literal written by set/change blocks")


class VariableUsageProfile(BaseModel):
    """
    Name-independent fingerprint of a variable.

    The declared name is kept for display only and never takes part in
    similarity.
    """

    id: str
    declared_name: str
    is_list: bool = False
    declaration_index: int = Field(..., ge=0)
    usages: list[UsageEvent] = Field(default_factory=list)

    def kind_counts(self) -> dict[UsageKind, int]:
        counts = {kind: 0 for kind in UsageKind}
        for usage in self.usages:
            counts[usage.kind] += 1
        return counts


class VariableMapping(BaseModel):
    """
    Partial injective mapping from submitted to reference variable ids.

    Attributes:
        pairs: submitted id -> reference id.
        similarities: submitted id -> similarity of its chosen pair.
        unmatched_submitted: Submitted ids with no counterpart.
        unmatched_reference: Reference ids nobody claimed.
    """

    pairs: dict[str, str] = Field(default_factory=dict)
    similarities: dict[str, float] = Field(default_factory=dict)
    unmatched_submitted: list[str] = Field(default_factory=list)
    unmatched_reference: list[str] = Field(default_factory=list)

    def resolve(self, variable_id: str) -> str:
        return self.pairs.get(variable_id, variable_id)


# ---------------------------------------------------------------------------
# Requirements and checking
# ---------------------------------------------------------------------------


class Requirement(BaseModel):
    """
    One checklist item derived from the reference or supplied by an author.

    Attributes:
        opcode: Required block opcode.
        expected_count: How many occurrences are expected.
        expected_values: Slot name to the literal every occurrence should carry.
        expected_variables: Variable or list field every occurrence should reference.
        order_rank: Sequence position in the originating script, None for expressions.
        nesting_context: Opcode of the enclosing block every occurrence shares, if any.
        variable_id: Set on variable requirements, which ask for a reference
            variable or list to be used rather than for a block.
        script_key: Originating script, used to pair requirements for order checks.
        label: Human readable block name.
        category: Opcode family display name.
        weight: Optional explicit scoring weight.
    """

    opcode: str = Field(..., description="Required block opcode")
    expected_count: int = Field(default=1, ge=1, description="Expected number of occurrences")
    expected_values: dict[str, Any] = Field(default_factory=dict, description="Expected literal slot values")
    expected_variables: dict[str, FieldValue] = Field(
        default_factory=dict, description="Expected variable and list fields"
    )
    order_rank: int | None = Field(default=None, ge=0, description="Position in the originating script")
    nesting_context: str | None = Field(default=None, description="Opcode of the enclosing block")
    variable_id: str | None = Field(default=None, description="Reference variable this requirement asks for")
    script_key: str | None = Field(default=None, description="Originating script key")
    label: str = Field(default="", description="Human readable block name")
    category: str = Field(default="", description="Opcode family")
    weight: float | None = Field(default=None, gt=0, description="Explicit scoring weight")


class CheckStatus(str, Enum):
    SATISFIED = "satisfied"
    MISSING = "missing"
    COUNT_MISMATCH = "count_mismatch"
    VALUE_MISMATCH = "value_mismatch"
    ORDER_VIOLATION = "order_violation"


class MismatchSeverity(str, Enum):
    MINOR = "minor"
    MAJOR = "major"


class ValueDiff(BaseModel):
    """
    A slot whose submitted value differs from the expected one.

    Besides literal slots, `slot` can name a variable or list field, or
    NESTING_SLOT (see checker) when the block sits in the wrong container.
    """

    slot: str
    expected: Any = None
    actual: Any = None
    severity: MismatchSeverity
    relative_gap: float | None = Field(default=None, description="Relative numeric gap, if numeric")


class CheckResult(BaseModel):
    """
    Outcome of checking one requirement (or one ordered pair of requirements).

    For order violations, `requirement` is the block that should come first
    and `following` the block that should come after it.
    """

    requirement: Requirement
    status: CheckStatus
    severity: MismatchSeverity | None = Field(default=None, description="Set for value mismatches")
    detail: str = Field(default="", description="Short machine-oriented description")
    found_count: int = Field(default=0, ge=0)
    value_diffs: list[ValueDiff] = Field(default_factory=list)
    matched_block_ids: list[str] = Field(default_factory=list)
    following: Requirement | None = None


class ExtraBlock(BaseModel):
    block_id: str
    opcode: str
    label: str = ""
    category: str = ""
    script_key: str | None = None


class ExtraVariable(BaseModel):
    id: str
    name: str
    is_list: bool = False


class ExtraElementReport(BaseModel):
    """Submitted elements no requirement accounts for."""

    blocks: list[ExtraBlock] = Field(default_factory=list)
    variables: list[ExtraVariable] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Feedback and result
# ---------------------------------------------------------------------------


class Severity(str, Enum):
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


class FeedbackDetail(BaseModel):
    """One line of learner-facing feedback. Lower priority values come first."""

    severity: Severity
    icon: str
    message: str
    priority: int = Field(..., ge=0)
    category: str | None = None


class Feedback(BaseModel):
    summary: str = Field(..., description="One-sentence summary keyed to the score band")
    details: list[FeedbackDetail] = Field(default_factory=list, description="Issues, most important first")
    hints: list[str] = Field(default_factory=list, max_length=3, description="At most three hints")


class EvaluationResult(BaseModel):
    """
    Complete grading result for one submission.

    Attributes:
        score: Integer score between 0 and 100.
        is_correct: Whether the score reaches the passing mark.
        feedback: Summary, details and hints for the presentation layer.
    """

    score: int = Field(..., ge=0, le=100)
    is_correct: bool
    feedback: Feedback


class SubmissionGrade(BaseModel):
    """
    Batch grading record for one submission file.

    Attributes:
        submission_id: Submission identifier (file or folder name).
        source_path: Path the submission was read from.
        result: Evaluation result.
        error: Loading error, if the file could not be read.
    """

    submission_id: str = Field(..., description="Submission identifier")
    source_path: str | None = Field(default=None, description="Path to the submission")
    result: EvaluationResult
    error: str | None = Field(default=None, description="Loading error message")

"""
Block indexer.

Follows `next` links from every top-level block to build scripts,
flattens control-block bodies into nested sequences and resolves reporter
blocks into the slots that reference them.
"""

import logging
from collections.abc import Iterable, Iterator

from .config import MAX_CHAIN_LENGTH, MAX_NESTING_DEPTH
from .errors import MalformedGraphError
from .models import (
    Block,
    ExpressionInput,
    IndexedBlock,
    IndexedProgram,
    LiteralInput,
    Program,
    Script,
    Target,
)

logger = logging.getLogger(__name__)


def index_program(
    program: Program,
    max_chain_length: int = MAX_CHAIN_LENGTH,
    max_depth: int = MAX_NESTING_DEPTH,
) -> IndexedProgram:
    """
    Index every target of a program.

    A target whose block graph is malformed is skipped and recorded in
    `skipped_targets`; the remaining targets are still indexed.

    Args:
        program: Parsed program.
        max_chain_length: Maximum number of blocks in one chain.
        max_depth: Maximum substack/expression nesting depth.

    Returns:
        IndexedProgram with scripts and variable declarations.
    """
    scripts: list[Script] = []
    variables = {}
    skipped: list[str] = []

    for target in program.targets:
        try:
            target_scripts = index_target(target, max_chain_length, max_depth)
        except MalformedGraphError as e:
            logger.warning("Skipping malformed target '%s': %s", target.name, e)
            skipped.append(target.name)
            continue
        scripts.extend(target_scripts)
        variables.update(target.variables)

    return IndexedProgram(scripts=scripts, variables=variables, skipped_targets=skipped)


def index_target(
    target: Target,
    max_chain_length: int = MAX_CHAIN_LENGTH,
    max_depth: int = MAX_NESTING_DEPTH,
) -> list[Script]:
    """
    Build the scripts of one target.

    Raises:
        MalformedGraphError: If a block is reachable twice (a cycle or a
            shared chain), a chain is too long or nesting is too deep.
    """
    return _TargetIndexer(target, max_chain_length, max_depth).index()


class _TargetIndexer:
    """Walks one target's block map, tracking visited ids."""

    def __init__(self, target: Target, max_chain_length: int, max_depth: int) -> None:
        self.target = target
        self.max_chain_length = max_chain_length
        self.max_depth = max_depth
        self.visited: set[str] = set()

    def index(self) -> list[Script]:
        scripts: list[Script] = []
        for block in self.target.blocks.values():
            if not block.top_level or block.shadow:
                continue
            chain = self._chain(block.id, depth=0, context=None)
            if chain:
                scripts.append(Script(target_name=self.target.name, index=len(scripts), blocks=chain))
        return scripts

    def _fail(self, message: str, block_id: str | None = None) -> MalformedGraphError:
        return MalformedGraphError(message, target_name=self.target.name, block_id=block_id)

    def _visit(self, block_id: str) -> None:
        if block_id in self.visited:
            raise self._fail(f"block '{block_id}' is reachable more than once", block_id)
        self.visited.add(block_id)

    def _chain(self, start_id: str, depth: int, context: str | None) -> list[IndexedBlock]:
        if depth > self.max_depth:
            raise self._fail(f"nesting deeper than {self.max_depth} levels", start_id)

        chain: list[IndexedBlock] = []
        current: str | None = start_id
        while current is not None:
            block = self.target.blocks.get(current)
            if block is None:
                logger.debug("Dangling block reference '%s' in target '%s'", current, self.target.name)
                break
            self._visit(current)
            if len(chain) >= self.max_chain_length:
                raise self._fail(f"chain longer than {self.max_chain_length} blocks", current)
            chain.append(self._resolve(block, depth, context))
            current = block.next
        return chain

    def _resolve(self, block: Block, depth: int, context: str | None) -> IndexedBlock:
        literals = {}
        expressions: dict[str, IndexedBlock] = {}
        substacks: dict[str, list[IndexedBlock]] = {}

        for slot, value in block.inputs.items():
            if isinstance(value, LiteralInput):
                literals[slot] = value.value
            elif isinstance(value, ExpressionInput):
                reporter = self.target.blocks.get(value.block_id)
                if reporter is None:
                    logger.debug("Dangling expression '%s' on %s.%s", value.block_id, block.id, slot)
                    continue
                if depth + 1 > self.max_depth:
                    raise self._fail(f"nesting deeper than {self.max_depth} levels", reporter.id)
                self._visit(reporter.id)
                expressions[slot] = self._resolve(reporter, depth + 1, block.opcode)
            else:
                substacks[slot] = self._chain(value.block_id, depth + 1, block.opcode)

        return IndexedBlock(
            id=block.id,
            opcode=block.opcode,
            literals=literals,
            expressions=expressions,
            substacks=dict(sorted(substacks.items())),
            fields=dict(block.fields),
            nesting_context=context,
        )


def iter_statements(blocks: Iterable[IndexedBlock]) -> Iterator[IndexedBlock]:
    """Yield statement blocks in pre-order, descending into substacks but not expressions."""
    for block in blocks:
        yield block
        for body in block.substacks.values():
            yield from iter_statements(body)


def iter_all_blocks(blocks: Iterable[IndexedBlock]) -> Iterator[IndexedBlock]:
    """Yield every block in pre-order: the block, its expressions, then its substacks."""
    for block in blocks:
        yield block
        yield from iter_all_blocks(block.expressions.values())
        for body in block.substacks.values():
            yield from iter_all_blocks(body)


def iter_program_blocks(program: IndexedProgram) -> Iterator[tuple[Script, IndexedBlock]]:
    for script in program.scripts:
        for block in iter_all_blocks(script.blocks):
            yield script, block

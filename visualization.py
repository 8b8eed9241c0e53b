"""
Step-through view of an evaluation
Replays a (possibly truncated) trace into per-node states and renders the
syntax tree with each node's status as indented text
"""

from typing import Dict, List, Optional, Tuple, Union
from dataclasses import dataclass, field

from syntax import AnnotatedExpression, Variable, IntLiteral, StringLiteral, Function, Call, Let, Tag
from values import Value, pretty
from error_handling import EvaluationError
from interpreter import TraceEvent, TraceStart, TraceEnd
from utilities import format_bindings, truncate


# ============================================================================
# NODE STATES
# ============================================================================

@dataclass(frozen=True)
class NotStarted:
  pass


@dataclass(frozen=True)
class InProgress:
  environment: Dict[str, Value]


@dataclass(frozen=True)
class Done:
  result: Union[Value, EvaluationError]


NodeState = Union[NotStarted, InProgress, Done]


def node_states(trace: List[TraceEvent], steps: Optional[int] = None) -> Dict[int, NodeState]:
  """
  Replay the first `steps` events of a trace (all of them when None).
  Nodes absent from the result have not started.
  """
  events = trace if steps is None else trace[:max(0, steps)]
  states: Dict[int, NodeState] = {}
  for event in events:
    if isinstance(event, TraceStart):
      states[event.node_id] = InProgress(event.environment)
    elif isinstance(event, TraceEnd):
      states[event.node_id] = Done(event.result)
  return states


# ============================================================================
# TREE
# ============================================================================

@dataclass
class TreeNode:
  label: str
  state: NodeState
  children: List[Tuple[Optional[str], 'TreeNode']] = field(default_factory=list)


def build_tree(node: AnnotatedExpression, states: Dict[int, NodeState]) -> TreeNode:
  """Mirror the expression shape, attaching each node's state"""
  state = states.get(node.id, NotStarted())
  expression = node.expression

  if isinstance(expression, Variable):
    return TreeNode(f"var {expression.name}", state)
  if isinstance(expression, IntLiteral):
    return TreeNode(f"int {expression.value}", state)
  if isinstance(expression, StringLiteral):
    return TreeNode(f'string "{expression.value}"', state)
  if isinstance(expression, Function):
    params = "(" + ", ".join(expression.parameters) + ")"
    return TreeNode(f"func {params}", state, [("body", build_tree(expression.body, states))])
  if isinstance(expression, Call):
    children = [("lhs", build_tree(expression.callee, states))]
    children += [(None, build_tree(argument, states)) for argument in expression.arguments]
    return TreeNode("call", state, children)
  if isinstance(expression, Let):
    return TreeNode(f"let {expression.name}", state, [
        ("value", build_tree(expression.value, states)),
        ("body", build_tree(expression.body, states)),
    ])
  if isinstance(expression, Tag):
    return TreeNode(f"tag {expression.name}", state, [(None, build_tree(child, states)) for child in expression.body])
  raise TypeError(f"Unknown expression node: {expression!r}")


def describe_state(state: NodeState) -> str:
  if isinstance(state, InProgress):
    bindings = format_bindings(state.environment, limit=30)
    return f"[running: {bindings}]" if bindings else "[running]"
  if isinstance(state, Done):
    if isinstance(state.result, EvaluationError):
      return f"[! {state.result.reason.describe()}]"
    return f"[= {truncate(pretty(state.result))}]"
  return "[...]"


def render_tree(tree: TreeNode, indent: int = 0, edge: Optional[str] = None) -> str:
  prefix = f"{edge}: " if edge else ""
  result = "  " * indent + f"{prefix}{tree.label} {describe_state(tree.state)}\n"
  for child_edge, child in tree.children:
    result += render_tree(child, indent + 1, child_edge)
  return result


def render_trace(node: AnnotatedExpression, trace: List[TraceEvent], steps: Optional[int] = None) -> str:
  """Render the tree as it stood after `steps` trace events"""
  return render_tree(build_tree(node, node_states(trace, steps)))

"""
Template Language Interpreter
Tree-walking evaluator over the annotated syntax tree. Every visited node
records a start event (with the visible bindings) and an end event (with its
value or error) in an ordered trace.
"""

from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple, Union
from dataclasses import dataclass, field

from syntax import (
  AnnotatedExpression,
  Variable, IntLiteral, StringLiteral, Function, Call, Let, Tag,
)
from values import Value, StringValue, IntValue, FunctionValue, HtmlValue, kind_name, pretty
from error_handling import (
  EvaluationError,
  VariableMissing,
  ExpectedFunction,
  WrongNumberOfArguments,
  TypeMismatch,
  RecursionLimitExceeded,
)
from utilities import html_escape, truncate


# Each nesting level costs about three Python frames, well under the default interpreter limit
DEFAULT_MAX_DEPTH = 200


# ============================================================================
# ENVIRONMENT (persistent overlays)
# ============================================================================

@dataclass(frozen=True)
class RuntimeEnv:
  bindings: Mapping[str, Value] = field(default_factory=dict)
  parent: Optional['RuntimeEnv'] = None


def make_runtime_env(parent: Optional[RuntimeEnv] = None, bindings: Optional[Mapping[str, Value]] = None) -> RuntimeEnv:
  """Create an environment layer on top of `parent`"""
  return RuntimeEnv(dict(bindings or {}), parent)


def env_bind_value(env: RuntimeEnv, name: str, value: Value) -> RuntimeEnv:
  """Return a new environment with name bound; `env` itself is unchanged"""
  return make_runtime_env(env, {name: value})


def env_bind_values(env: RuntimeEnv, pairs: Iterable[Tuple[str, Value]]) -> RuntimeEnv:
  """Bind several names in one layer; a repeated name keeps its last value"""
  bindings: Dict[str, Value] = {}
  for name, value in pairs:
    bindings[name] = value
  return make_runtime_env(env, bindings)


def env_lookup_value(env: Optional[RuntimeEnv], name: str) -> Optional[Value]:
  while env is not None:
    if name in env.bindings:
      return env.bindings[name]
    env = env.parent
  return None


def env_snapshot(env: Optional[RuntimeEnv]) -> Dict[str, Value]:
  """Flatten the layers into a plain dict; inner bindings win"""
  layers = []
  while env is not None:
    layers.append(env.bindings)
    env = env.parent
  snapshot: Dict[str, Value] = {}
  for bindings in reversed(layers):
    snapshot.update(bindings)
  return snapshot


# ============================================================================
# TRACE
# ============================================================================

@dataclass(frozen=True)
class TraceStart:
  node_id: int
  environment: Dict[str, Value]


@dataclass(frozen=True)
class TraceEnd:
  node_id: int
  result: Union[Value, EvaluationError]

  @property
  def failed(self) -> bool:
    return isinstance(self.result, EvaluationError)


TraceEvent = Union[TraceStart, TraceEnd]


@dataclass
class Evaluation:
  """The outcome of evaluating a tree: a value or an error, plus the full trace"""
  result: Union[Value, EvaluationError]
  trace: List[TraceEvent]

  @property
  def ok(self) -> bool:
    return not isinstance(self.result, EvaluationError)

  @property
  def value(self) -> Optional[Value]:
    return self.result if self.ok else None

  @property
  def error(self) -> Optional[EvaluationError]:
    return None if self.ok else self.result

  def unwrap(self) -> Value:
    """Return the value or raise the evaluation error"""
    if isinstance(self.result, EvaluationError):
      raise self.result
    return self.result


def make_execution_context(max_depth: Optional[int] = DEFAULT_MAX_DEPTH, debug: bool = False) -> Dict[str, Any]:
  """Per-evaluation state: the trace being built and the current nesting depth"""
  return {
      'trace': [],
      'depth': 0,
      'max_depth': max_depth,
      'debug': debug,
  }


# ============================================================================
# EVALUATION FUNCTIONS
# ============================================================================

def eval_ast(node: AnnotatedExpression, env: RuntimeEnv, context: Dict[str, Any]) -> Value:
  """
  Evaluate a node, recording its start and end in the trace.
  Errors are recorded as the node's result and then re-raised.
  """
  trace = context['trace']
  trace.append(TraceStart(node.id, env_snapshot(env)))
  context['depth'] += 1
  try:
    max_depth = context['max_depth']
    if max_depth is not None and context['depth'] > max_depth:
      raise EvaluationError(RecursionLimitExceeded(max_depth), node.range)
    value = _eval_node(node, env, context)
  except EvaluationError as e:
    if context['debug']:
      print(f"[EVAL] #{node.id} failed: {e.reason.describe()}")
    trace.append(TraceEnd(node.id, e))
    raise
  finally:
    context['depth'] -= 1

  if context['debug']:
    print(f"[EVAL] #{node.id} {type(node.expression).__name__} => {truncate(pretty(value))}")
  trace.append(TraceEnd(node.id, value))
  return value


def _eval_node(node: AnnotatedExpression, env: RuntimeEnv, context: Dict[str, Any]) -> Value:
  expression = node.expression

  if isinstance(expression, IntLiteral):
    return IntValue(expression.value)
  elif isinstance(expression, StringLiteral):
    return StringValue(expression.value)
  elif isinstance(expression, Variable):
    return eval_variable(node, env, context)
  elif isinstance(expression, Function):
    return FunctionValue(expression.parameters, expression.body)
  elif isinstance(expression, Let):
    return eval_let(node, env, context)
  elif isinstance(expression, Call):
    return eval_call(node, env, context)
  elif isinstance(expression, Tag):
    return eval_tag(node, env, context)
  raise TypeError(f"Unknown expression node: {expression!r}")


def eval_variable(node: AnnotatedExpression, env: RuntimeEnv, context: Dict[str, Any]) -> Value:
  name = node.expression.name
  value = env_lookup_value(env, name)
  if value is None:
    raise EvaluationError(VariableMissing(name), node.range)
  return value


def eval_let(node: AnnotatedExpression, env: RuntimeEnv, context: Dict[str, Any]) -> Value:
  expression = node.expression
  value = eval_ast(expression.value, env, context)
  return eval_ast(expression.body, env_bind_value(env, expression.name, value), context)


def eval_call(node: AnnotatedExpression, env: RuntimeEnv, context: Dict[str, Any]) -> Value:
  """
  Apply a function. The body runs in the caller's environment extended with
  the parameters (dynamic scoping); arguments all see the caller's environment.
  """
  expression = node.expression
  callee = eval_ast(expression.callee, env, context)
  if not isinstance(callee, FunctionValue):
    raise EvaluationError(ExpectedFunction(callee), node.range)

  if len(callee.parameters) != len(expression.arguments):
    raise EvaluationError(
        WrongNumberOfArguments(len(callee.parameters), len(expression.arguments)), node.range)

  arguments = [eval_ast(argument, env, context) for argument in expression.arguments]
  call_env = env_bind_values(env, zip(callee.parameters, arguments))
  return eval_ast(callee.body, call_env, context)


def eval_tag(node: AnnotatedExpression, env: RuntimeEnv, context: Dict[str, Any]) -> Value:
  """Render a tag; strings are escaped, html is inserted verbatim"""
  expression = node.expression
  parts = [f"<{expression.name}>"]
  for child in expression.body:
    value = eval_ast(child, env, context)
    if isinstance(value, HtmlValue):
      parts.append(value.markup)
    elif isinstance(value, StringValue):
      parts.append(html_escape(value.value))
    else:
      raise EvaluationError(
          TypeMismatch(f"Expected html or string, but got {kind_name(value)} {pretty(value)}"), child.range)
  parts.append(f"</{expression.name}>")
  return HtmlValue("".join(parts))


def evaluate(expression: AnnotatedExpression, env: Optional[RuntimeEnv] = None,
             max_depth: Optional[int] = DEFAULT_MAX_DEPTH, debug: bool = False) -> Evaluation:
  """Evaluate a tree from an (by default empty) environment, returning result and trace"""
  context = make_execution_context(max_depth, debug)
  try:
    result: Union[Value, EvaluationError] = eval_ast(expression, env or make_runtime_env(), context)
  except EvaluationError as e:
    result = e
  return Evaluation(result, context['trace'])


# ============================================================================
# FACTORY FUNCTIONS
# ============================================================================

class TemplateInterpreter:
  """Evaluator configured once and reused for many trees"""

  def __init__(self, debug: bool = False, max_depth: Optional[int] = DEFAULT_MAX_DEPTH):
    self.debug = debug
    self.max_depth = max_depth

  def evaluate(self, expression: AnnotatedExpression, env: Optional[RuntimeEnv] = None) -> Evaluation:
    return evaluate(expression, env, max_depth=self.max_depth, debug=self.debug)


def create_interpreter(debug: bool = False, max_depth: Optional[int] = DEFAULT_MAX_DEPTH) -> TemplateInterpreter:
  """Create an interpreter"""
  return TemplateInterpreter(debug=debug, max_depth=max_depth)


def create_debug_interpreter(max_depth: Optional[int] = DEFAULT_MAX_DEPTH) -> TemplateInterpreter:
  """Create an interpreter that prints every evaluated node"""
  return create_interpreter(debug=True, max_depth=max_depth)

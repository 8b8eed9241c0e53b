"""
Template Language - Main Entry Point
Run a template program, inspect its syntax tree, or step through its trace
"""

import sys
import argparse
import os
from pathlib import Path
from typing import Optional

# Readline support for history and auto-completion
try:
  import readline
  READLINE_AVAILABLE = True
except ImportError:
  READLINE_AVAILABLE = False

from parsing import create_parser, create_debug_parser
from interpreter import create_interpreter, create_debug_interpreter, DEFAULT_MAX_DEPTH
from error_handling import ParseError, EvaluationError, format_parse_error, format_evaluation_error
from syntax import pretty_print_tree
from values import pretty
from visualization import render_trace


VERSION = "Template v0.1.0"
HISTORY_FILE = "~/.template_history"


def non_negative_int(text: str) -> int:
  """argparse type for counts where 0 means 'off'"""
  value = int(text)
  if value < 0:
    raise argparse.ArgumentTypeError(f"must be 0 or greater, got {value}")
  return value


def create_arg_parser() -> argparse.ArgumentParser:
  """Create command line argument parser"""
  parser = argparse.ArgumentParser(
      description='Template expression language - functions, let-bindings and HTML tags',
      formatter_class=argparse.RawDescriptionHelpFormatter,
      epilog="""
Examples:
  %(prog)s page.tmpl                       # Evaluate a template file
  %(prog)s -e 'let x = "hi" in <p>{x}</p>' # Evaluate an expression
  %(prog)s --parse page.tmpl               # Show the syntax tree
  %(prog)s --trace 5 page.tmpl             # Show evaluation after 5 trace events
  %(prog)s -i                              # Interactive mode
        """
  )

  parser.add_argument(
      'script',
      nargs='?',
      help='Template file to evaluate'
  )

  parser.add_argument(
      '-e', '--expression',
      help='Evaluate the given expression instead of a file'
  )

  parser.add_argument(
      '-i', '--interactive',
      action='store_true',
      help='Start interactive mode'
  )

  parser.add_argument(
      '--parse',
      action='store_true',
      help='Parse only and show the annotated syntax tree'
  )

  parser.add_argument(
      '--trace',
      nargs='?',
      type=int,
      const=-1,
      metavar='N',
      help='Show the tree with node states after N trace events (all events when N is omitted)'
  )

  parser.add_argument(
      '--max-depth',
      type=non_negative_int,
      default=DEFAULT_MAX_DEPTH,
      help=f'Maximum evaluation nesting depth, 0 to disable (default: {DEFAULT_MAX_DEPTH})'
  )

  parser.add_argument(
      '--debug',
      action='store_true',
      help='Print parser and evaluator diagnostics'
  )

  parser.add_argument(
      '--version',
      action='version',
      version=VERSION
  )

  return parser


def run_source(source: str, parse_only: bool = False, trace_steps: Optional[int] = None,
               max_depth: Optional[int] = DEFAULT_MAX_DEPTH, debug: bool = False) -> int:
  """Parse and evaluate one program, printing the result. Returns an exit status."""
  if debug:
    parser = create_debug_parser()
    interpreter = create_debug_interpreter(max_depth=max_depth)
  else:
    parser = create_parser()
    interpreter = create_interpreter(max_depth=max_depth)

  try:
    tree = parser.parse(source)
  except ParseError as e:
    print(format_parse_error(e, source), file=sys.stderr)
    return 1

  if parse_only:
    print(pretty_print_tree(tree, source), end='')
    return 0

  evaluation = interpreter.evaluate(tree)

  if trace_steps is not None:
    steps = None if trace_steps < 0 else trace_steps
    print(render_trace(tree, evaluation.trace, steps), end='')
    print(f"({len(evaluation.trace)} trace events)")

  if evaluation.error is not None:
    print(format_evaluation_error(evaluation.error, source), file=sys.stderr)
    return 1

  print(pretty(evaluation.value))
  return 0


def run_script_file(script_path: str, **options) -> int:
  """Evaluate a template file"""
  try:
    source = Path(script_path).read_text(encoding='utf-8')
  except FileNotFoundError:
    print(f"Error: Script file '{script_path}' not found", file=sys.stderr)
    return 1
  except UnicodeDecodeError as e:
    print(f"Error: Cannot decode file '{script_path}': {e}", file=sys.stderr)
    print(f"  Hint: Make sure the file is a text file with UTF-8 encoding", file=sys.stderr)
    return 1
  return run_source(source, **options)


def setup_readline() -> None:
  """Setup readline with history and keyword completion"""
  if not READLINE_AVAILABLE:
    return

  history_file = os.path.expanduser(HISTORY_FILE)
  try:
    readline.read_history_file(history_file)
  except OSError:
    pass  # First run, no history yet

  readline.set_history_length(1000)

  completions = ["let", "in", "func", ":parse", ":trace", ":help", "exit"]

  def completer(text, state):
    options = [word for word in completions if word.startswith(text)]
    if state < len(options):
      return options[state]
    return None

  readline.set_completer(completer)
  readline.parse_and_bind("tab: complete")

  import atexit
  atexit.register(readline.write_history_file, history_file)


def print_help() -> None:
  print("REPL Commands:")
  print("  :parse <expr>      - Show the annotated syntax tree")
  print("  :trace <n> <expr>  - Show node states after n trace events")
  print("  :help              - Show this help")
  print("  exit               - Exit REPL")
  print()
  print("Language:")
  print('  42, "text"                      - Literals')
  print("  func(x, y) { x }                - Function")
  print("  f(1, 2)                         - Call")
  print("  let x = 1 in x                  - Binding")
  print('  <p>{ "a < b" }<b>{ x }</b></p>  - Tags, strings are escaped')


def run_interactive_mode(debug: bool = False, max_depth: Optional[int] = DEFAULT_MAX_DEPTH) -> None:
  """Read-evaluate-print loop; every line is an independent program"""
  print(f"{VERSION} - Interactive Mode")
  print("Type 'exit' to quit, ':help' for commands")
  if READLINE_AVAILABLE:
    print("Readline enabled: Use ↑/↓ for history, Tab for completion")
  print()

  setup_readline()
  options = {'debug': debug, 'max_depth': max_depth}

  while True:
    try:
      code = input("> ").strip()
    except (KeyboardInterrupt, EOFError):
      print("\nGoodbye!")
      break

    if not code:
      continue
    if code == "exit":
      break
    if code == ":help":
      print_help()
      continue

    if code.startswith(":parse "):
      run_source(code[len(":parse "):], parse_only=True, **options)
      continue

    if code.startswith(":trace "):
      steps_text, _, expr_text = code[len(":trace "):].strip().partition(" ")
      if not steps_text.isdigit():
        print("Usage: :trace <n> <expr>")
        continue
      run_source(expr_text, trace_steps=int(steps_text), **options)
      continue

    run_source(code, **options)


def main(argv: Optional[list] = None) -> None:
  """Main entry point"""
  arg_parser = create_arg_parser()
  args = arg_parser.parse_args(argv)

  options = {
      'parse_only': args.parse,
      'trace_steps': args.trace,
      'max_depth': args.max_depth or None,
      'debug': args.debug,
  }

  if args.expression is not None:
    sys.exit(run_source(args.expression, **options))
  elif args.script:
    sys.exit(run_script_file(args.script, **options))
  else:
    run_interactive_mode(debug=args.debug, max_depth=options['max_depth'])


if __name__ == "__main__":
  main()

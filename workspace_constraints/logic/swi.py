"""SWI-Prolog backend built on the `janus_swi` interface.

Every session is a separate Prolog module, so knowledge bases never leak
into each other. Every query runs inside its own SWI-Prolog engine, which
is what keeps threads of one session independent. The bridge module below
converts answers and exception terms into plain lists, strings and numbers
before they reach Python; `decode` rebuilds them as `terms` objects.
Closing a session destroys its open engines and abolishes the predicates
of its module.
"""

from __future__ import annotations

import itertools
import logging
from typing import Any

import janus_swi as janus

from .engine import (
    Answer,
    AnswerCallback,
    EngineSession,
    EngineThread,
    ErrorCallback,
    LogicEngine,
    SuccessCallback,
)
from .terms import Num, Str, Term, TermLike, Var

logger = logging.getLogger(__name__)

BRIDGE_MODULE = "constraints_bridge"

BRIDGE_SOURCE = r"""
:- module(constraints_bridge,
          [ bridge_consult/3,
            bridge_open/4,
            bridge_next/2,
            bridge_close/1,
            bridge_dispose/1
          ]).
:- use_module(library(lists)).
:- use_module(library(apply)).

bridge_consult(ModuleText, Text, Result) :-
    atom_string(Module, ModuleText),
    catch(bridge_load(Module, Text, Failed), Error, true),
    (   var(Error)
    ->  Result = ["ok", Failed]
    ;   bridge_throw(Error, Text, Result)
    ).

bridge_load(Module, Text, Failed) :-
    setup_call_cleanup(
        open_string(Text, Stream),
        bridge_load_terms(Module, Stream, Failed),
        close(Stream)).

bridge_load_terms(Module, Stream, Failed) :-
    read_term(Stream, Term, [module(Module)]),
    (   Term == end_of_file
    ->  Failed = []
    ;   expand_term(Term, Expanded),
        (   is_list(Expanded)
        ->  Clauses = Expanded
        ;   Clauses = [Expanded]
        ),
        bridge_add_all(Clauses, Module, Failed, Rest),
        bridge_load_terms(Module, Stream, Rest)
    ).

bridge_add_all([], _, Failed, Failed).
bridge_add_all([Clause|Clauses], Module, Failed, Rest) :-
    bridge_add(Module, Clause, Failed, Failed1),
    bridge_add_all(Clauses, Module, Failed1, Rest).

bridge_add(Module, (:- Goal), Failed, Rest) :- !,
    (   call(Module:Goal)
    ->  Failed = Rest
    ;   format(string(Text), "~q", [Goal]),
        Failed = [Text|Rest]
    ).
bridge_add(Module, Clause, Failed, Failed) :-
    assertz(Module:Clause).

bridge_open(ModuleText, EngineText, Text, Result) :-
    atom_string(Module, ModuleText),
    atom_string(Engine, EngineText),
    catch(term_string(Goal, Text, [variable_names(Bindings), module(Module)]), Error, true),
    (   var(Error)
    ->  engine_create(Answer,
                      bridge_solve(Module, Goal, Bindings, Text, Answer),
                      _,
                      [alias(Engine)]),
        Result = ["ok"]
    ;   bridge_throw(Error, Text, Result)
    ).

bridge_solve(Module, Goal, Bindings, Text, Answer) :-
    catch(Module:Goal, Error, true),
    (   var(Error)
    ->  bridge_bindings(Bindings, Links),
        Answer = ["answer", Links]
    ;   bridge_throw(Error, Text, Answer)
    ).

bridge_next(EngineText, Answer) :-
    atom_string(Engine, EngineText),
    catch(bridge_next_(Engine, Answer), Error, bridge_throw(Error, "", Answer)).

bridge_next_(Engine, Answer) :-
    (   engine_next(Engine, Answer0)
    ->  Answer = Answer0
    ;   bridge_close(Engine),
        Answer = ["done"]
    ).

bridge_close(EngineText) :-
    atom_string(Engine, EngineText),
    (   is_engine(Engine)
    ->  engine_destroy(Engine)
    ;   true
    ).

bridge_dispose(ModuleText) :-
    atom_string(Module, ModuleText),
    forall(( current_predicate(Module:Name/Arity),
             functor(Head, Name, Arity),
             \+ predicate_property(Module:Head, imported_from(_))
           ),
           abolish(Module:Name/Arity)).

bridge_bindings([], []).
bridge_bindings([Name=Value|Rest], [[NameText, Encoded]|Links]) :-
    atom_string(Name, NameText),
    bridge_encode(Value, Encoded),
    bridge_bindings(Rest, Links).

bridge_throw(Error, Text, ["throw", Encoded]) :-
    bridge_normalize(Error, Text, Normalized),
    bridge_encode(Normalized, Encoded).

bridge_normalize(Error, _, Error) :- var(Error), !.
bridge_normalize(error(Formal0, Context0), Text, Error) :- !,
    bridge_strip(Formal0, Formal),
    bridge_context(Context0, Text, Context),
    (   Context == none
    ->  Error = error(Formal)
    ;   Error = error(Formal, Context)
    ).
bridge_normalize(Error, _, Error).

bridge_context(Context, _, none) :- var(Context), !.
bridge_context(stream(_, _, _, CharNo), Text, Position) :- !,
    bridge_position(Text, CharNo, Position).
bridge_context(string(_, CharNo), Text, Position) :- !,
    bridge_position(Text, CharNo, Position).
bridge_context(context(Culprit, _), _, Context) :- !,
    (   var(Culprit)
    ->  Context = none
    ;   bridge_strip(Culprit, Context)
    ).
bridge_context(Context0, _, Context) :-
    bridge_strip(Context0, Context).

bridge_position(Text, CharNo, [line(Line), column(Column)]) :-
    integer(CharNo),
    string(Text),
    string_length(Text, Length),
    Offset is max(0, min(CharNo, Length)),
    sub_string(Text, 0, Offset, _, Before),
    split_string(Before, "\n", "", Lines),
    length(Lines, Line),
    last(Lines, Current),
    string_length(Current, Width),
    Column is Width + 1,
    !.
bridge_position(_, _, none).

bridge_strip(Term, Term) :- var(Term), !.
bridge_strip(:(_, Name/Arity), Name/Arity) :- !.
bridge_strip((_:Name)/Arity, Name/Arity) :- atom(Name), !.
bridge_strip(Term0, Term) :-
    compound(Term0), !,
    compound_name_arguments(Term0, Name, Args0),
    maplist(bridge_strip, Args0, Args),
    compound_name_arguments(Term, Name, Args).
bridge_strip(Term, Term).

bridge_encode(Term, ["var", Name]) :- var(Term), !,
    format(string(Name), "~p", [Term]).
bridge_encode(Term, ["num", Term]) :- number(Term), !.
bridge_encode(Term, ["str", Term]) :- string(Term), !.
bridge_encode([], ["atom", "[]"]) :- !.
bridge_encode(Term, ["atom", Name]) :- atom(Term), !,
    atom_string(Term, Name).
bridge_encode([Head|Tail], ["term", ".", [H, T]]) :- !,
    bridge_encode(Head, H),
    bridge_encode(Tail, T).
bridge_encode(Term, ["term", Name, Args]) :- compound(Term), !,
    compound_name_arguments(Term, Functor, Args0),
    atom_string(Functor, Name),
    maplist(bridge_encode, Args0, Args).
bridge_encode(Term, ["atom", Name]) :-
    format(string(Name), "~p", [Term]).
"""

# Process-wide: the bridge module is loaded once per Prolog runtime
_bridge_loaded = False

_SESSION_IDS = itertools.count(1)
_THREAD_IDS = itertools.count(1)


def decode(data: Any) -> TermLike:
    """Rebuild a term from the bridge's list encoding."""
    tag = data[0]
    if tag == "num":
        return Num(data[1])
    if tag == "str":
        return Str(data[1])
    if tag == "var":
        return Var(data[1])
    if tag == "atom":
        return Term(data[1])
    if tag == "term":
        return Term(data[1], tuple(decode(arg) for arg in data[2]))
    raise ValueError(f"Unexpected term encoding from bridge: {data!r}")


def _call(goal: str, inputs: dict[str, Any], output: str | None = None) -> Any:
    result = janus.query_once(f"{BRIDGE_MODULE}:{goal}", inputs)
    if not result.get("truth"):
        raise RuntimeError(f"Bridge goal failed: {goal}")
    return result[output] if output else None


class SwiThread(EngineThread):
    def __init__(self, module: str):
        self.module = module
        self.name = f"{module}_thread_{next(_THREAD_IDS)}"
        self._queries = itertools.count(1)
        self._engine: str | None = None

    def consult(self, source: str, *, on_success: SuccessCallback, on_error: ErrorCallback) -> None:
        outcome = _call("bridge_consult(M, T, R)", {"M": self.module, "T": source}, "R")
        if outcome[0] == "throw":
            on_error(decode(outcome[1]))
            return
        for directive in outcome[1]:
            logger.warning("Directive failed in %s: %s", self.module, directive)
        on_success()

    def close(self) -> None:
        """Destroy the engine of the current query, if any."""
        if self._engine is not None:
            _call("bridge_close(E)", {"E": self._engine})
            self._engine = None

    def query(self, source: str, *, on_success: SuccessCallback, on_error: ErrorCallback) -> None:
        self.close()
        engine = f"{self.name}_q{next(self._queries)}"
        outcome = _call(
            "bridge_open(M, E, T, R)",
            {"M": self.module, "E": engine, "T": source},
            "R",
        )
        if outcome[0] == "throw":
            on_error(decode(outcome[1]))
            return
        self._engine = engine
        on_success()

    def answer(self, callback: AnswerCallback) -> None:
        if self._engine is None:
            callback(None)
            return

        outcome = _call("bridge_next(E, A)", {"E": self._engine}, "A")
        tag = outcome[0]
        if tag == "done":
            self._engine = None
            callback(None)
        elif tag == "throw":
            self.close()
            callback(Answer(thrown=decode(outcome[1])))
        else:
            callback(Answer(links={name: decode(value) for name, value in outcome[1]}))


class SwiSession(EngineSession):
    def __init__(self, module: str):
        self.module = module
        self.main = SwiThread(module)
        self._threads = [self.main]
        self._closed = False

    def create_thread(self) -> SwiThread:
        thread = SwiThread(self.module)
        self._threads.append(thread)
        return thread

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        for thread in self._threads:
            thread.close()
        self._threads.clear()
        _call("bridge_dispose(M)", {"M": self.module})
        logger.debug("Disposed %s", self.module)


class SwiEngine(LogicEngine):
    name = "swi"

    def setup(self) -> None:
        global _bridge_loaded
        if _bridge_loaded:
            return
        janus.consult(f"{BRIDGE_MODULE}.pl", data=BRIDGE_SOURCE)
        _bridge_loaded = True
        logger.debug("Loaded %s into SWI-Prolog", BRIDGE_MODULE)

    def create_session(self) -> SwiSession:
        return SwiSession(f"constraints_session_{next(_SESSION_IDS)}")

"""
  Erlang form, expression and type parser

Recursive descent over scanner tokens. Trees use the tagged-tuple shape of
Erlang's abstract format, with plain Python values for names:

    - ("var", L, Name)  ("atom", L, Name)  ("integer", L, I)  ("float", L, F)
    - ("char", L, C)  ("string", L, S)  ("nil", L)  ("cons", L, H, T)
    - ("tuple", L, [Es])  ("bin", L, [("bin_element", L, V, Size, Tsl)])
    - ("map", L, [Assocs])  ("map", L, Base, [Assocs])
    - ("record", L, Name, [Fields])  ("record", L, Base, Name, [Fields])
    - ("record_field", L, Expr, Name, Field)  ("record_index", L, Name, Field)
    - ("op", L, Op, A, B)  ("op", L, Op, A)  ("match", L, P, E)
    - ("call", L, F, [Args])  ("remote", L, M, F)
    - ("fun", L, ("clauses", [Cs]))  ("fun", L, ("function", F, A))
    - ("fun", L, ("function", M, F, A))  ("named_fun", L, Name, [Cs])
    - ("case", L, E, [Cs])  ("if", L, [Cs])  ("receive", L, [Cs][, T, Body])
    - ("try", L, Body, [Cs], [Catch], After)  ("block", L, Body)
    - ("catch", L, E)  ("lc", L, E, [Qs])  ("bc", L, E, [Qs])
    - ("clause", L, [Pats], [[Guard]], [Body])

Types use ("type", L, Name, Args), ("user_type", L, Name, Args),
("remote_type", L, [M, N, Args]) and ("ann_type", L, [Var, T]).

Patterns and guards are parsed with the expression grammar.
"""

from __future__ import annotations

from typing import Optional

from lfe_include import ErlNode
from lfe_include.errors import ErlangSyntaxError
from lfe_include.erlang.scanner import Token
from lfe_include.types.host import (
    Attribute,
    Export,
    Function,
    HostDeclaration,
    Import,
    Opaque,
    Record,
    Spec,
    Type,
)


COMP_OPS = frozenset({"==", "/=", "=<", "<", ">=", ">", "=:=", "=/="})
LIST_OPS = frozenset({"++", "--"})
ADD_OPS = frozenset({"+", "-", "bor", "bxor", "bsl", "bsr", "or", "xor"})
MULT_OPS = frozenset({"/", "*", "div", "rem", "band", "and"})
PREFIX_OPS = frozenset({"+", "-", "bnot", "not"})

# Types the compiler knows without a definition (erl_internal:is_type/2).
BUILTIN_TYPES = frozenset({
    "any", "arity", "atom", "binary", "bitstring", "bool", "boolean", "byte",
    "char", "dynamic", "float", "function", "identifier", "integer", "iodata",
    "iolist", "list", "map", "maybe_improper_list", "mfa", "module",
    "neg_integer", "nil", "no_return", "node", "non_neg_integer", "none",
    "nonempty_binary", "nonempty_bitstring", "nonempty_improper_list",
    "nonempty_list", "nonempty_maybe_improper_list", "nonempty_string",
    "number", "pid", "port", "pos_integer", "reference", "string", "term",
    "timeout", "tuple",
})

END_OPENERS = frozenset({"begin", "case", "if", "receive", "try", "maybe", "cond", "let"})


class Parser:
    def __init__(self, tokens: list[Token]):
        self.tokens = list(tokens)
        self.pos = 0

    # ------------------------
    # Token stream helpers
    # ------------------------

    def peek(self, offset: int = 0) -> Optional[Token]:
        i = self.pos + offset
        return self.tokens[i] if i < len(self.tokens) else None

    def peek_kind(self, offset: int = 0) -> Optional[str]:
        tok = self.peek(offset)
        return tok.kind if tok else None

    def line(self) -> int:
        tok = self.peek()
        if tok is not None:
            return tok.line
        return self.tokens[-1].line if self.tokens else 0

    def advance(self) -> Token:
        tok = self.peek()
        if tok is None:
            raise ErlangSyntaxError(("premature_end",), self.line())
        self.pos += 1
        return tok

    def expect(self, kind: str) -> Token:
        tok = self.peek()
        if tok is None or tok.kind != kind:
            found = tok.value if tok else "end of input"
            raise ErlangSyntaxError(("expected", kind, found), self.line())
        self.pos += 1
        return tok

    def accept(self, kind: str) -> Optional[Token]:
        if self.peek_kind() == kind:
            return self.advance()
        return None

    def at_end(self) -> bool:
        return self.pos >= len(self.tokens)

    def _seq(self, item, close: str, sep: str = ",") -> list:
        """Items separated by ``sep`` up to and including ``close``."""
        items = []
        if self.accept(close):
            return items
        while True:
            items.append(item())
            if self.accept(close):
                return items
            self.expect(sep)

    # ------------------------
    # Expressions
    # ------------------------

    def parse_expr(self) -> ErlNode:
        if self.peek_kind() == "catch":
            line = self.advance().line
            return ("catch", line, self.parse_expr())
        return self._expr_100()

    def parse_exprs(self) -> list[ErlNode]:
        exprs = [self.parse_expr()]
        while self.accept(","):
            exprs.append(self.parse_expr())
        return exprs

    def _expr_100(self) -> ErlNode:
        left = self._expr_150()
        kind = self.peek_kind()
        if kind == "=":
            line = self.advance().line
            return ("match", line, left, self._expr_100())
        if kind == "!":
            line = self.advance().line
            return ("op", line, "!", left, self._expr_100())
        return left

    def _expr_150(self) -> ErlNode:
        left = self._expr_160()
        if self.peek_kind() == "orelse":
            line = self.advance().line
            return ("op", line, "orelse", left, self._expr_150())
        return left

    def _expr_160(self) -> ErlNode:
        left = self._expr_200()
        if self.peek_kind() == "andalso":
            line = self.advance().line
            return ("op", line, "andalso", left, self._expr_160())
        return left

    def _expr_200(self) -> ErlNode:
        left = self._expr_300()
        if self.peek_kind() in COMP_OPS:
            tok = self.advance()
            return ("op", tok.line, tok.kind, left, self._expr_300())
        return left

    def _expr_300(self) -> ErlNode:
        left = self._expr_400()
        if self.peek_kind() in LIST_OPS:
            tok = self.advance()
            return ("op", tok.line, tok.kind, left, self._expr_300())
        return left

    def _expr_400(self) -> ErlNode:
        left = self._expr_500()
        while self.peek_kind() in ADD_OPS:
            tok = self.advance()
            left = ("op", tok.line, tok.kind, left, self._expr_500())
        return left

    def _expr_500(self) -> ErlNode:
        left = self._expr_600()
        while self.peek_kind() in MULT_OPS:
            tok = self.advance()
            left = ("op", tok.line, tok.kind, left, self._expr_600())
        return left

    def _expr_600(self) -> ErlNode:
        if self.peek_kind() in PREFIX_OPS:
            tok = self.advance()
            return ("op", tok.line, tok.kind, self._expr_600())
        return self._expr_700()

    def _expr_700(self) -> ErlNode:
        expr = self._expr_max()
        if self.peek_kind() == ":":
            line = self.advance().line
            expr = ("remote", line, expr, self._expr_max())
        while True:
            kind = self.peek_kind()
            if kind == "(":
                line = self.advance().line
                expr = ("call", line, expr, self._seq(self.parse_expr, ")"))
            elif kind == "#":
                expr = self._hash_suffix(expr)
            else:
                return expr

    def _hash_suffix(self, base: ErlNode) -> ErlNode:
        line = self.expect("#").line
        if self.accept("{"):
            return ("map", line, base, self._seq(self._map_field, "}"))
        name = self.expect("atom").value
        if self.accept("."):
            field = self.expect("atom")
            return ("record_field", line, base, name, ("atom", field.line, field.value))
        self.expect("{")
        return ("record", line, base, name, self._seq(self._record_field, "}"))

    def _expr_max(self) -> ErlNode:
        tok = self.peek()
        if tok is None:
            raise ErlangSyntaxError(("premature_end",), self.line())
        kind = tok.kind
        if kind in ("var", "atom", "integer", "float", "char"):
            self.advance()
            return (kind, tok.line, tok.value)
        if kind == "string":
            self.advance()
            parts = [tok.value]
            while self.peek_kind() == "string":
                parts.append(self.advance().value)
            return ("string", tok.line, "".join(parts))
        if kind == "(":
            self.advance()
            expr = self.parse_expr()
            self.expect(")")
            return expr
        if kind == "{":
            self.advance()
            return ("tuple", tok.line, self._seq(self.parse_expr, "}"))
        if kind == "[":
            return self._list()
        if kind == "<<":
            return self._binary()
        if kind == "#":
            return self._hash_prefix()
        if kind == "fun":
            return self._fun()
        if kind == "case":
            self.advance()
            expr = self.parse_expr()
            self.expect("of")
            return ("case", tok.line, expr, self._cr_clauses())
        if kind == "if":
            self.advance()
            clauses = [self._if_clause()]
            while self.accept(";"):
                clauses.append(self._if_clause())
            self.expect("end")
            return ("if", tok.line, clauses)
        if kind == "receive":
            return self._receive()
        if kind == "try":
            return self._try()
        if kind == "begin":
            self.advance()
            body = self.parse_exprs()
            self.expect("end")
            return ("block", tok.line, body)
        raise ErlangSyntaxError(("unexpected", tok.value), tok.line)

    def _list(self) -> ErlNode:
        line = self.expect("[").line
        if self.accept("]"):
            return ("nil", line)
        first = self.parse_expr()
        if self.accept("||"):
            quals = self._seq(self._qualifier, "]")
            return ("lc", line, first, quals)
        elements = [first]
        while self.accept(","):
            elements.append(self.parse_expr())
        tail: ErlNode = ("nil", line)
        if self.accept("|"):
            tail = self.parse_expr()
        self.expect("]")
        for elem in reversed(elements):
            tail = ("cons", elem[1], elem, tail)
        return tail

    def _qualifier(self) -> ErlNode:
        expr = self.parse_expr()
        kind = self.peek_kind()
        if kind == "<-":
            line = self.advance().line
            return ("generate", line, expr, self.parse_expr())
        if kind == "<=":
            line = self.advance().line
            return ("b_generate", line, expr, self.parse_expr())
        return expr

    def _binary(self) -> ErlNode:
        line = self.expect("<<").line
        if self.accept(">>"):
            return ("bin", line, [])
        if self.peek_kind() == "<<":
            # Either a nested binary element or a comprehension template.
            start = self.pos
            template = self._binary()
            if self.accept("||"):
                return ("bc", line, template, self._seq(self._qualifier, ">>"))
            self.pos = start
        elements = [self._bin_element()]
        while self.accept(","):
            elements.append(self._bin_element())
        self.expect(">>")
        return ("bin", line, elements)

    def _bin_element(self) -> ErlNode:
        line = self.line()
        if self.peek_kind() in PREFIX_OPS:
            tok = self.advance()
            value = ("op", tok.line, tok.kind, self._expr_max())
        else:
            value = self._expr_max()
        size: object = "default"
        if self.accept(":"):
            size = self._expr_max()
        tsl: object = "default"
        if self.accept("/"):
            tsl = [self._bit_type()]
            while self.accept("-"):
                tsl.append(self._bit_type())
        return ("bin_element", line, value, size, tsl)

    def _bit_type(self):
        name = self.expect("atom").value
        if self.accept(":"):
            return (name, self.expect("integer").value)
        return name

    def _hash_prefix(self) -> ErlNode:
        line = self.expect("#").line
        if self.accept("{"):
            return ("map", line, self._seq(self._map_field, "}"))
        name = self.expect("atom").value
        if self.accept("."):
            field = self.expect("atom")
            return ("record_index", line, name, ("atom", field.line, field.value))
        self.expect("{")
        return ("record", line, name, self._seq(self._record_field, "}"))

    def _map_field(self) -> ErlNode:
        key = self.parse_expr()
        tok = self.advance()
        if tok.kind == "=>":
            return ("map_field_assoc", tok.line, key, self.parse_expr())
        if tok.kind == ":=":
            return ("map_field_exact", tok.line, key, self.parse_expr())
        raise ErlangSyntaxError(("expected", "=>", tok.value), tok.line)

    def _record_field(self) -> ErlNode:
        tok = self.advance()
        if tok.kind not in ("atom", "var"):
            raise ErlangSyntaxError(("bad_record_field", tok.value), tok.line)
        self.expect("=")
        return ("record_field", tok.line, (tok.kind, tok.line, tok.value), self.parse_expr())

    def _fun(self) -> ErlNode:
        line = self.expect("fun").line
        kind = self.peek_kind()
        if kind == "(":
            return ("fun", line, ("clauses", self._fun_clauses(None)))
        if kind == "var" and self.peek_kind(1) == "(":
            name = self.peek().value
            return ("named_fun", line, name, self._fun_clauses(name))
        if kind in ("atom", "var") and self.peek_kind(1) == ":":
            module = self._expr_max()
            self.expect(":")
            function = self._expr_max()
            self.expect("/")
            arity = self._expr_max()
            return ("fun", line, ("function", module, function, arity))
        name = self.expect("atom").value
        self.expect("/")
        arity = self.expect("integer").value
        return ("fun", line, ("function", name, arity))

    def _fun_clauses(self, name: Optional[str]) -> list[ErlNode]:
        clauses = [self._fun_clause(name)]
        while self.accept(";"):
            clauses.append(self._fun_clause(name))
        self.expect("end")
        return clauses

    def _fun_clause(self, name: Optional[str]) -> ErlNode:
        line = self.line()
        if name is not None:
            tok = self.expect("var")
            if tok.value != name:
                raise ErlangSyntaxError(("bad_fun_name", tok.value), tok.line)
        self.expect("(")
        pats = self._seq(self.parse_expr, ")")
        guard = self._guard()
        return ("clause", line, pats, guard, self._clause_body())

    def _guard(self) -> list[list[ErlNode]]:
        if not self.accept("when"):
            return []
        guard = [self.parse_exprs()]
        while self.accept(";"):
            guard.append(self.parse_exprs())
        return guard

    def _clause_body(self) -> list[ErlNode]:
        self.expect("->")
        return self.parse_exprs()

    def _cr_clause(self) -> ErlNode:
        line = self.line()
        pat = self.parse_expr()
        guard = self._guard()
        return ("clause", line, [pat], guard, self._clause_body())

    def _cr_clauses(self) -> list[ErlNode]:
        clauses = [self._cr_clause()]
        while self.accept(";"):
            clauses.append(self._cr_clause())
        self.expect("end")
        return clauses

    def _if_clause(self) -> ErlNode:
        line = self.line()
        guard = [self.parse_exprs()]
        while self.accept(";"):
            guard.append(self.parse_exprs())
        return ("clause", line, [], guard, self._clause_body())

    def _receive(self) -> ErlNode:
        line = self.expect("receive").line
        clauses = []
        if self.peek_kind() != "after":
            clauses.append(self._cr_clause())
            while self.accept(";"):
                clauses.append(self._cr_clause())
        if self.accept("after"):
            timeout = self.parse_expr()
            body = self._clause_body()
            self.expect("end")
            return ("receive", line, clauses, timeout, body)
        self.expect("end")
        return ("receive", line, clauses)

    def _try(self) -> ErlNode:
        line = self.expect("try").line
        body = self.parse_exprs()
        of_clauses: list[ErlNode] = []
        catch_clauses: list[ErlNode] = []
        after: list[ErlNode] = []
        if self.accept("of"):
            of_clauses.append(self._cr_clause())
            while self.accept(";"):
                of_clauses.append(self._cr_clause())
        if self.accept("catch"):
            catch_clauses.append(self._try_clause())
            while self.accept(";"):
                catch_clauses.append(self._try_clause())
        if self.accept("after"):
            after = self.parse_exprs()
        if not catch_clauses and not after:
            raise ErlangSyntaxError(("expected", "catch", self.peek_kind()), self.line())
        self.expect("end")
        return ("try", line, body, of_clauses, catch_clauses, after)

    def _try_clause(self) -> ErlNode:
        line = self.line()
        cls: ErlNode = ("atom", line, "throw")
        if self.peek_kind() in ("atom", "var") and self.peek_kind(1) == ":":
            tok = self.advance()
            cls = (tok.kind, tok.line, tok.value)
            self.advance()
        pat = self.parse_expr()
        stack: ErlNode = ("var", line, "_")
        # Reason:Stack reads as a remote expression, split it back up.
        if pat[0] == "remote" and pat[3][0] == "var":
            pat, stack = pat[2], pat[3]
        guard = self._guard()
        body = self._clause_body()
        return ("clause", line, [("tuple", line, [cls, pat, stack])], guard, body)

    # ------------------------
    # Types
    # ------------------------

    def parse_type(self) -> ErlNode:
        if self.peek_kind() == "var" and self.peek_kind(1) == "::":
            var = self.advance()
            line = self.advance().line
            return ("ann_type", line, [("var", var.line, var.value), self.parse_type()])
        first = self._type_100()
        if self.peek_kind() != "|":
            return first
        members = [first]
        while self.accept("|"):
            members.append(self._type_100())
        return ("type", first[1], "union", members)

    def _type_100(self) -> ErlNode:
        left = self._type_200()
        if self.peek_kind() == "..":
            line = self.advance().line
            return ("type", line, "range", [left, self._type_200()])
        return left

    def _type_200(self) -> ErlNode:
        left = self._type_300()
        while self.peek_kind() in ADD_OPS and self.peek_kind() not in ("or", "xor"):
            tok = self.advance()
            left = ("op", tok.line, tok.kind, left, self._type_300())
        return left

    def _type_300(self) -> ErlNode:
        left = self._type_400()
        while self.peek_kind() in ("*", "div", "rem", "band"):
            tok = self.advance()
            left = ("op", tok.line, tok.kind, left, self._type_400())
        return left

    def _type_400(self) -> ErlNode:
        if self.peek_kind() in ("-", "+", "bnot"):
            tok = self.advance()
            return ("op", tok.line, tok.kind, self._type_400())
        return self._type_max()

    def _type_max(self) -> ErlNode:
        tok = self.peek()
        if tok is None:
            raise ErlangSyntaxError(("premature_end",), self.line())
        kind, line = tok.kind, tok.line
        if kind == "(":
            self.advance()
            t = self.parse_type()
            self.expect(")")
            return t
        if kind == "var":
            self.advance()
            return ("var", line, tok.value)
        if kind in ("integer", "char"):
            self.advance()
            return (kind, line, tok.value)
        if kind == "atom":
            self.advance()
            if self.peek_kind() == ":" and self.peek_kind(1) == "atom":
                self.advance()
                name = self.advance().value
                self.expect("(")
                args = self._seq(self.parse_type, ")")
                return ("remote_type", line, [("atom", line, tok.value), ("atom", line, name), args])
            if self.accept("("):
                args = self._seq(self.parse_type, ")")
                return self._named_type(line, tok.value, args)
            return ("atom", line, tok.value)
        if kind == "[":
            self.advance()
            if self.accept("]"):
                return ("type", line, "nil", [])
            elem = self.parse_type()
            if self.accept(","):
                self.expect("...")
                self.expect("]")
                return ("type", line, "nonempty_list", [elem])
            self.expect("]")
            return ("type", line, "list", [elem])
        if kind == "{":
            self.advance()
            return ("type", line, "tuple", self._seq(self.parse_type, "}"))
        if kind == "#":
            self.advance()
            if self.accept("{"):
                return ("type", line, "map", self._seq(self._map_pair_type, "}"))
            name = self.expect("atom").value
            self.expect("{")
            fields = self._seq(self._field_type, "}")
            return ("type", line, "record", [("atom", line, name)] + fields)
        if kind == "<<":
            return self._binary_type()
        if kind == "fun":
            self.advance()
            self.expect("(")
            if self.accept(")"):
                return ("type", line, "fun", [])
            t = self._fun_type()
            self.expect(")")
            return t
        raise ErlangSyntaxError(("unexpected", tok.value), line)

    def _named_type(self, line: int, name: str, args: list[ErlNode]) -> ErlNode:
        if name == "tuple" and not args:
            return ("type", line, "tuple", "any")
        if name == "map" and not args:
            return ("type", line, "map", "any")
        if name in BUILTIN_TYPES:
            return ("type", line, name, args)
        return ("user_type", line, name, args)

    def _map_pair_type(self) -> ErlNode:
        key = self.parse_type()
        tok = self.advance()
        if tok.kind == "=>":
            return ("type", tok.line, "map_field_assoc", [key, self.parse_type()])
        if tok.kind == ":=":
            return ("type", tok.line, "map_field_exact", [key, self.parse_type()])
        raise ErlangSyntaxError(("expected", "=>", tok.value), tok.line)

    def _field_type(self) -> ErlNode:
        name = self.expect("atom")
        self.expect("::")
        return ("type", name.line, "field_type", [("atom", name.line, name.value), self.parse_type()])

    def _binary_type(self) -> ErlNode:
        # <<>>, <<_:M>>, <<_:_*N>>, <<_:M, _:_*N>>
        line = self.expect("<<").line
        size, unit = 0, 0
        while not self.accept(">>"):
            self.expect("var")
            self.expect(":")
            if self.peek_kind() == "var":
                self.advance()
                self.expect("*")
                unit = self.expect("integer").value
            else:
                size = self.expect("integer").value
            self.accept(",")
        return ("type", line, "binary", [("integer", line, size), ("integer", line, unit)])

    def _fun_type(self) -> ErlNode:
        line = self.expect("(").line
        if self.accept("..."):
            self.expect(")")
            self.expect("->")
            return ("type", line, "fun", [("type", line, "any"), self.parse_type()])
        args = self._seq(self.parse_type, ")")
        self.expect("->")
        ret = self.parse_type()
        return ("type", line, "fun", [("type", line, "product", args), ret])

    def _spec_fun(self) -> ErlNode:
        fun = self._fun_type()
        if not self.accept("when"):
            return fun
        constraints = [self._constraint()]
        while self.accept(","):
            constraints.append(self._constraint())
        return ("type", fun[1], "bounded_fun", [fun, constraints])

    def _constraint(self) -> ErlNode:
        var = self.expect("var")
        self.expect("::")
        return ("type", var.line, "constraint",
                [("atom", var.line, "is_subtype"), [("var", var.line, var.value), self.parse_type()]])

    # ------------------------
    # Forms
    # ------------------------

    def parse_form(self) -> HostDeclaration:
        if self.peek_kind() == "-":
            return self._attribute()
        return self._function()

    def _end_of_form(self) -> None:
        self.expect("dot")
        if not self.at_end():
            raise ErlangSyntaxError(("unexpected", self.peek().value), self.line())

    def _attribute(self) -> HostDeclaration:
        line = self.expect("-").line
        tok = self.advance()
        if tok.kind not in ("atom", "if", "else"):
            raise ErlangSyntaxError(("bad_attribute", tok.value), tok.line)
        name = tok.value
        if name in ("type", "opaque"):
            decl = self._type_attribute(line, name)
        elif name == "spec":
            decl = self._spec_attribute(line)
        else:
            self.expect("(")
            if name == "record":
                decl = self._record_attribute(line)
            elif name in ("export", "export_type"):
                funcs = self._farity_list()
                decl = Export(line, funcs) if name == "export" else \
                    Attribute(line, name, _farity_term(line, funcs))
            elif name == "import":
                module = self.expect("atom").value
                self.expect(",")
                decl = Import(line, module, self._farity_list())
            else:
                value = self.parse_expr()
                check_term(value)
                decl = Attribute(line, name, value)
            self.expect(")")
        self._end_of_form()
        return decl

    def _farity_list(self) -> tuple[tuple[str, int], ...]:
        self.expect("[")

        def farity():
            name = self.expect("atom").value
            self.expect("/")
            return name, self.expect("integer").value

        return tuple(self._seq(farity, "]"))

    def _record_attribute(self, line: int) -> Record:
        name = self.expect("atom").value
        self.expect(",")
        self.expect("{")
        return Record(line, name, tuple(self._seq(self._record_decl_field, "}")))

    def _record_decl_field(self) -> ErlNode:
        tok = self.expect("atom")
        name = ("atom", tok.line, tok.value)
        if self.accept("="):
            field = ("record_field", tok.line, name, self.parse_expr())
        else:
            field = ("record_field", tok.line, name)
        if self.accept("::"):
            return ("typed_record_field", field, self.parse_type())
        return field

    def _type_attribute(self, line: int, kind: str) -> HostDeclaration:
        parens = self.accept("(") is not None
        name = self.expect("atom").value
        self.expect("(")
        params = tuple(self._seq(self._type_param, ")"))
        self.expect("::")
        definition = self.parse_type()
        if parens:
            self.expect(")")
        if kind == "type":
            return Type(line, name, params, definition)
        return Opaque(line, name, params, definition)

    def _type_param(self) -> ErlNode:
        tok = self.expect("var")
        return ("var", tok.line, tok.value)

    def _spec_attribute(self, line: int) -> Spec:
        parens = self.accept("(") is not None
        name = self.expect("atom").value
        if self.accept(":"):
            # -spec Mod:Name(...), the module is implied
            name = self.expect("atom").value
        funs = [self._spec_fun()]
        while self.accept(";"):
            funs.append(self._spec_fun())
        if parens:
            self.expect(")")
        fun = funs[0][3][0] if funs[0][2] == "bounded_fun" else funs[0]
        arity = len(fun[3][0][3]) if fun[3][0][2] == "product" else 0
        return Spec(line, name, arity, tuple(funs))

    def _function(self) -> Function:
        line = self.line()
        name_tok = self.expect("atom")
        clauses = [self._function_clause(name_tok.value)]
        while self.accept(";"):
            tok = self.expect("atom")
            if tok.value != name_tok.value:
                raise ErlangSyntaxError(("bad_function_clause", tok.value), tok.line)
            clauses.append(self._function_clause(tok.value))
        self._end_of_form()
        arities = {len(c[2]) for c in clauses}
        if len(arities) != 1:
            raise ErlangSyntaxError(("bad_arity", name_tok.value), line)
        return Function(line, name_tok.value, arities.pop(), tuple(clauses))

    def _function_clause(self, name: str) -> ErlNode:
        line = self.line()
        self.expect("(")
        pats = self._seq(self.parse_expr, ")")
        guard = self._guard()
        return ("clause", line, pats, guard, self._clause_body())


def _farity_term(line: int, funcs) -> ErlNode:
    tail: ErlNode = ("nil", line)
    for name, arity in reversed(funcs):
        pair = ("tuple", line, [("atom", line, name), ("integer", line, arity)])
        tail = ("cons", line, pair, tail)
    return tail


def check_term(expr: ErlNode) -> None:
    """Attribute values must be plain terms, as erl_parse:normalise/1 requires."""
    tag = expr[0]
    if tag in ("atom", "integer", "float", "char", "string", "nil"):
        return
    if tag == "op" and len(expr) == 4 and expr[2] in ("-", "+") and expr[3][0] in ("integer", "float"):
        return
    if tag == "cons":
        check_term(expr[2])
        check_term(expr[3])
        return
    if tag == "tuple":
        for e in expr[2]:
            check_term(e)
        return
    if tag == "map":
        if len(expr) == 3:
            for assoc in expr[2]:
                if assoc[0] != "map_field_assoc":
                    break
                check_term(assoc[2])
                check_term(assoc[3])
            else:
                return
    if tag == "bin" and all(
        el[2][0] in ("string", "integer", "char") and el[3] == "default" and el[4] == "default"
        for el in expr[2]
    ):
        return
    raise ErlangSyntaxError(("bad_attribute_value",), expr[1])


def parse_form(tokens: list[Token]) -> HostDeclaration:
    """Parse one dot-terminated form."""
    return Parser(tokens).parse_form()


def parse_exprs(tokens: list[Token]) -> list[ErlNode]:
    """Parse dot-terminated, comma separated expressions."""
    p = Parser(tokens)
    exprs = p.parse_exprs()
    p._end_of_form()
    return exprs

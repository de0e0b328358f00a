"""Newick tree text parsing and writing.

Parsing runs a small stack automaton over a token stream that holds only
'(', ')' and one marker per leaf. Label text is collected separately by two
regex scans, one for leaves (after '(' or ',') and one for internal nodes
(after ')'), both in left-to-right order.

Non-binary groups are flattened into a left-leaning cascade of nameless,
zero-length branches.
"""

import re
from pathlib import Path

import numpy as np
from rich.console import Console

from phyloatlas.core.exceptions import NewickFormatError
from phyloatlas.core.tree import Tree

console = Console()

LEAF_LABEL = re.compile(r'(?<=[(,])[^(),;\[\]]+')
INTERNAL_LABEL = re.compile(r'\)([^(),;\[\]]*)')
COMMENT = re.compile(r'\[[^\]]*\]')
STRUCTURAL_SPACE = re.compile(r'\s*([(),:;])\s*')

OPEN = -1
LEAF_TOKEN = '*'


def clean_newick(text):
    """Drop line breaks, [comments] and whitespace around structural characters."""
    text = text.replace('\r', '').replace('\n', '')
    text = COMMENT.sub('', text)
    return STRUCTURAL_SPACE.sub(r'\1', text).strip()


def _split_label(label):
    """Split 'name:distance' at the last colon."""
    if ':' not in label:
        return label, 0.0
    name, _, value = label.rpartition(':')
    try:
        return name, float(value)
    except ValueError:
        raise NewickFormatError(f"Invalid branch length '{value}' in label '{label}'") from None


def _check_parentheses(text):
    balance = 0
    for c in text:
        if c == '(':
            balance += 1
        elif c == ')':
            balance -= 1
        if balance < 0:
            raise NewickFormatError("The parentheses structure is inconsistent")
    if balance != 0:
        raise NewickFormatError("The parentheses structure is inconsistent")


def _tokenize(text, leaf_matches):
    positions = [(m.start(), LEAF_TOKEN) for m in leaf_matches]
    positions.extend((i, c) for i, c in enumerate(text) if c in '()')
    positions.sort()
    return [tok for _, tok in positions]


def parse_newick(text, name=''):
    """Parse Newick text into a Tree.

    Parameters:
        text (str): Newick string, e.g. "((A:0.1,B:0.2):0.05,C:0.3);"
        name (str): Name given to the tree

    Returns:
        Tree: Leaves in order of appearance, branches in order of their
            closing parenthesis. Without any ':' in the text the tree gets
            topological distances, otherwise missing lengths are 0

    Raises:
        NewickFormatError: No commas, unbalanced or empty parentheses, or
            a label that cannot be parsed
    """
    text = clean_newick(text)

    n_branches = text.count(',')
    if n_branches == 0:
        raise NewickFormatError("There is not any comma in the data")
    _check_parentheses(text)

    n_leaves = n_branches + 1
    n_nodes = n_leaves + n_branches
    names = [''] * n_nodes
    dist = np.zeros(n_nodes, dtype=float)

    leaf_matches = list(LEAF_LABEL.finditer(text))
    if len(leaf_matches) > n_leaves:
        raise NewickFormatError(f"Found {len(leaf_matches)} leaves but only {n_branches} commas")
    for i, m in enumerate(leaf_matches):
        names[i], dist[i] = _split_label(m.group(0))
    internal = [_split_label(label) for label in INTERNAL_LABEL.findall(text)]

    tokens = _tokenize(text, leaf_matches)
    pairs = np.zeros((n_branches, 2), dtype=int)
    stack = []
    li = bi = pi = 0
    t = 0
    while t < len(tokens):
        token = tokens[t]
        if token == '(':
            stack.append(OPEN)
        elif token == LEAF_TOKEN:
            stack.append(li)
            li += 1
        else:
            marker = len(stack) - 1
            while marker >= 0 and stack[marker] != OPEN:
                marker -= 1
            count = min(3, len(stack) - marker - 1)

            if count == 0:
                raise NewickFormatError("Found parenthesis pair with no data")
            if count == 1:
                # redundant parenthesis around a single node
                stack[marker] = stack.pop()
                pi += 1
            else:
                if bi >= n_branches:
                    raise NewickFormatError("More internal nodes than the commas allow")
                node = n_leaves + bi
                right = stack.pop()
                left = stack.pop()
                pairs[bi] = (left, right)
                bi += 1
                if count == 3:
                    # phantom branch; the same ')' is handled again
                    stack.append(node)
                    continue
                names[node], dist[node] = internal[pi]
                stack[-1] = node
                pi += 1
        t += 1

    if li != n_leaves or bi != n_branches or len(stack) != 1:
        raise NewickFormatError(
            f"Tree structure does not match the data: {li} leaves and {bi} branches "
            f"parsed, {n_leaves} and {n_branches} expected"
        )

    distances = dist if ':' in text else None
    return Tree(pairs, names, distances, name=name)


def read_newick(path):
    """Read a Newick file; the tree is named after the file stem."""
    path = Path(path)
    tree = parse_newick(path.read_text(), name=path.stem)
    console.print(f"  Read tree with {tree.num_leaves} leaves from {path}")
    return tree


def write_newick(tree, path, precision=None):
    """Write a tree as a single Newick line. Returns the path."""
    path = Path(path)
    path.write_text(tree.to_newick(precision=precision) + '\n')
    return path


__all__ = ['clean_newick', 'parse_newick', 'read_newick', 'write_newick']

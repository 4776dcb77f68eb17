"""
Tests that every third-party import in the shipped modules is declared as a dependency.
"""

import ast
import re
import sys
import tomllib
from pathlib import Path

ROOT = Path(__file__).resolve().parent.parent

# import name -> distribution name where they differ
DISTRIBUTIONS = {
    'dotenv': 'python-dotenv',
    'flask_sqlalchemy': 'flask-sqlalchemy',
}


def load_project():
    with open(ROOT / 'pyproject.toml', 'rb') as handle:
        return tomllib.load(handle)


def declared(project):
    names = set()
    for requirement in project['project']['dependencies']:
        names.add(re.split(r'[<>=!~\[; ]', requirement, maxsplit=1)[0].lower())
    return names


def imported_roots(path):
    roots = set()
    for node in ast.walk(ast.parse(path.read_text())):
        if isinstance(node, ast.Import):
            roots.update(alias.name.split('.')[0] for alias in node.names)
        elif isinstance(node, ast.ImportFrom) and node.module and node.level == 0:
            roots.add(node.module.split('.')[0])
    return roots


class TestDependencies:

    def test_third_party_imports_are_declared(self):
        project = load_project()
        local = set(project['tool']['setuptools']['py-modules'])
        dependencies = declared(project)

        missing = {}
        for module in sorted(local):
            for root in imported_roots(ROOT / f'{module}.py'):
                if root in local or root in sys.stdlib_module_names:
                    continue
                name = DISTRIBUTIONS.get(root, root).lower()
                if name not in dependencies:
                    missing.setdefault(name, []).append(module)

        assert missing == {}

    def test_werkzeug_is_declared(self):
        assert 'werkzeug' in declared(load_project())

from conftest import pom
from pomresolver.processing.maven_model import Coordinate
from pomresolver.processing.variable_resolver import replace_variables


class _MapResolver:
    def __init__(self, values):
        self.values = values

    def get(self, name):
        return self.values.get(name)


def test_replace_variables_single_pass():
    resolver = _MapResolver({"a": "${b}", "b": "never"})

    assert replace_variables("x-${a}-y", resolver) == "x-${b}-y"


def test_replace_variables_leaves_unknown_tokens():
    resolver = _MapResolver({"known": "1"})

    assert replace_variables("${known}.${unknown}", resolver) == "1.${unknown}"
    assert replace_variables("plain", resolver) == "plain"
    assert replace_variables(None, resolver) is None


def test_builtin_properties_and_parent_chain(local_registry, local_repo):
    local_repo.add("org.acme:parent:1", pom("org.acme", "parent", "1", body="""
        <properties><from.parent>p</from.parent><empty></empty></properties>
    """))
    local_repo.add("org.acme:app:2", pom("org.acme", "app", "2", parent="org.acme:parent:1", body="""
        <properties><own>o</own><project.version>shadow</project.version></properties>
    """))

    version = local_registry.resolve(Coordinate("org.acme", "app", "2"))
    variables = version.variables

    assert variables.owner is version
    assert variables.get("project.version") == "2"
    assert variables.get("project.groupId") == "org.acme"
    assert variables.get("project.artifactId") == "app"
    assert variables.get("own") == "o"
    assert variables.get("from.parent") == "p"
    assert variables.get("empty") is None
    assert variables.get("missing") is None
    assert version.evaluate("${project.artifactId}-${own}-${from.parent}") == "app-o-p"
    assert version.parent.variables.get("own") is None

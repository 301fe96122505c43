"""
Lifecycle tag classification

Every test carries exactly one tag token. The structured value registered with
the `tag` marker is the source of truth; the lexical `@release` /
`@development|@release` form is kept for display and for tests that declare
their tag in the first line of their docstring.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterable, Optional, Sequence, Tuple

from graph_harness.utils.error_handling import ClassificationError


class Tag(str, Enum):
    """Mutually exclusive lifecycle classifications"""
    RELEASE = "release"
    DEVELOPMENT = "development"
    FLAKY = "flaky"

    @property
    def token(self) -> str:
        return f"@{self.value}"


@dataclass(frozen=True)
class TestTag:
    """Primary lifecycle tag plus optional extra suite memberships"""
    __test__ = False

    primary: Tag
    secondary: Tuple[Tag, ...] = ()

    def __post_init__(self):
        all_tags = (self.primary,) + tuple(self.secondary)
        if len(set(all_tags)) != len(all_tags):
            raise ClassificationError(f"Duplicate tag in {'|'.join(t.token for t in all_tags)}")

    @property
    def all(self) -> Tuple[Tag, ...]:
        return (self.primary,) + tuple(self.secondary)

    @property
    def display(self) -> str:
        """Lexical form, e.g. @development|@release"""
        return "|".join(t.token for t in self.all)

    def __str__(self) -> str:
        return self.display


def _parse_tag_part(part: str, source: str) -> Tag:
    if not part.startswith("@") or len(part) == 1:
        raise ClassificationError(f"Malformed tag {part!r} in {source!r}")
    try:
        return Tag(part[1:].lower())
    except ValueError:
        known = ", ".join(t.token for t in Tag)
        raise ClassificationError(f"Unknown tag {part!r} in {source!r}; expected one of {known}") from None


def parse_tag_token(token: str, source: Optional[str] = None) -> TestTag:
    """Parse one `@a|@b` token"""
    source = source or token
    parts = token.split("|")
    tags = [_parse_tag_part(p, source) for p in parts]
    return TestTag(tags[0], tuple(tags[1:]))


def parse_declared_name(name: str) -> TestTag:
    """
    Extract the tag from a declared test name such as "@release creates an order".

    The tag token must lead the name and be the only `@` token in it.

    Raises:
        ClassificationError: zero tags, several tag tokens, or an unknown tag
    """
    tokens = name.split()
    tag_tokens = [t for t in tokens if t.startswith("@")]
    if not tag_tokens:
        raise ClassificationError(f"No lifecycle tag in {name!r}")
    if len(tag_tokens) > 1:
        raise ClassificationError(f"Multiple tag tokens in {name!r}: {' '.join(tag_tokens)}")
    if tokens[0] != tag_tokens[0]:
        raise ClassificationError(f"Tag token must lead the name in {name!r}")
    return parse_tag_token(tag_tokens[0], name)


def tag_from_marker_args(args: Sequence[Any], kwargs: Optional[dict] = None) -> TestTag:
    """
    Build a TestTag from `@pytest.mark.tag(...)` arguments.

    Accepted forms:
        tag(Tag.RELEASE)
        tag(Tag.DEVELOPMENT, Tag.RELEASE)
        tag("@development|@release")
        tag("release", secondary=["development"])
    """
    kwargs = kwargs or {}
    values = list(args) + list(kwargs.get("secondary", ()))
    if not values:
        raise ClassificationError("tag marker without a tag")

    tags = []
    for value in values:
        if isinstance(value, Tag):
            tags.append(value)
        elif isinstance(value, str) and value.startswith("@"):
            tags.extend(parse_tag_token(value).all)
        elif isinstance(value, str):
            tags.append(_parse_tag_part(f"@{value}", value))
        else:
            raise ClassificationError(f"Unsupported tag value {value!r}")
    return TestTag(tags[0], tuple(tags[1:]))


def declared_name_of(function: Any) -> Optional[str]:
    """First docstring line of a test function, used as its declared name"""
    doc = getattr(function, "__doc__", None)
    if not doc:
        return None
    for line in doc.strip().splitlines():
        if line.strip():
            return line.strip()
    return None


def classify(markers: Iterable[Any], declared_name: Optional[str]) -> TestTag:
    """
    Classify one test from its `tag` markers and declared name.

    Exactly one `tag` marker may be present; without one, the declared name
    must carry the tag lexically.
    """
    markers = list(markers)
    if len(markers) > 1:
        raise ClassificationError(f"{len(markers)} tag markers found; exactly one is allowed")
    if markers:
        return tag_from_marker_args(markers[0].args, markers[0].kwargs)
    if declared_name is None:
        raise ClassificationError("No tag marker and no declared name to read a tag from")
    return parse_declared_name(declared_name)

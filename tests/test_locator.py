import asyncio
from pathlib import Path

from docroot.config import EXTENSIONS
from docroot.model import Failure, FailureKind
from docroot.resolution.locator import (
	HTML,
	XHTML,
	Candidate,
	ResourceLocator,
	variantType,
)
from docroot.resolution.paths import ROOT, NormalizedPath


def locate(locator: ResourceLocator, *segments: str) -> Candidate | Failure:
	return asyncio.run(locator.locate(NormalizedPath(segments)))


def test_candidates_order(site: Path) -> None:
	locator = ResourceLocator(site, EXTENSIONS)
	root = site.resolve()
	assert locator.candidates(NormalizedPath(("docs",))) == [
		Candidate(root / "docs"),
		Candidate(root / "docs" / "index.html", HTML),
		Candidate(root / "docs.html", HTML),
		Candidate(root / "docs.htm", HTML),
		Candidate(root / "docs.xhtml", XHTML),
		Candidate(root / "docs.xhtm", XHTML),
	]
	# The root has no variants, and variants are opt-in
	assert locator.candidates(ROOT) == [
		Candidate(root),
		Candidate(root / "index.html", HTML),
	]
	assert len(ResourceLocator(site).candidates(NormalizedPath(("docs",)))) == 2


def test_variant_suffix_is_appended(site: Path) -> None:
	locator = ResourceLocator(site, (".html",))
	candidates = locator.candidates(NormalizedPath(("v1.2",)))
	assert candidates[-1].path.name == "v1.2.html"


def test_variant_types() -> None:
	assert variantType(".html") == HTML
	assert variantType(".htm") == HTML
	assert variantType(".xhtml") == XHTML
	assert variantType(".XHTM") == XHTML


def test_locates_files(site: Path) -> None:
	locator = ResourceLocator(site, EXTENSIONS)
	root = site.resolve()
	assert locate(locator) == Candidate(root / "index.html", HTML)
	assert locate(locator, "docs") == Candidate(root / "docs" / "index.html", HTML)
	assert locate(locator, "notes.txt") == Candidate(root / "notes.txt")
	assert locate(locator, "about") == Candidate(root / "about.html", HTML)
	assert locate(locator, "docs", "guide") == Candidate(
		root / "docs" / "guide.xhtml", XHTML
	)


def test_directories_are_skipped(site: Path) -> None:
	(site / "page.html").mkdir()
	(site / "page.htm").write_bytes(b"page")
	locator = ResourceLocator(site, EXTENSIONS)
	assert locate(locator, "page") == Candidate(site.resolve() / "page.htm", HTML)
	res = locate(locator, "empty")
	assert isinstance(res, Failure)
	assert res.kind is FailureKind.NotFound


def test_not_found(site: Path) -> None:
	locator = ResourceLocator(site)
	for segments in (("missing",), ("about",), ("notes.txt", "more")):
		res = locate(locator, *segments)
		assert isinstance(res, Failure)
		assert res.status == 404


def test_symlinks_escaping_root_are_skipped(site: Path, tmp_path: Path) -> None:
	secret = tmp_path / "secret.txt"
	secret.write_bytes(b"secret")
	(site / "leak.txt").symlink_to(secret)
	(site / "inner.txt").symlink_to(site / "notes.txt")
	locator = ResourceLocator(site)
	assert isinstance(locate(locator, "leak.txt"), Failure)
	assert locate(locator, "inner.txt") == Candidate(site.resolve() / "inner.txt")


def test_read(site: Path) -> None:
	locator = ResourceLocator(site)
	candidate = locate(locator, "notes.txt")
	assert isinstance(candidate, Candidate)
	assert asyncio.run(locator.read(candidate)) == b"Some notes\n"
	# The file disappears between the probe and the read
	(site / "notes.txt").unlink()
	res = asyncio.run(locator.read(candidate))
	assert isinstance(res, Failure)
	assert res.kind is FailureKind.IO
	assert res.status == 500


# EOF

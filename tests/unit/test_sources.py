import io
from pathlib import Path
from urllib.parse import urlparse

import pytest

from htsprobe import sources
from htsprobe.errors import HtsIOError, InputError
from htsprobe.sources import (
    LocalSource,
    RemoteSource,
    find_source,
    is_alignment,
    is_bgzip_generic,
    is_fasta,
    is_interval_list,
    is_vcf,
    to_source,
)


def test_string_path_is_local():
    source = to_source("/data/sample.bam")
    assert isinstance(source, LocalSource)
    assert source.is_local and not source.is_remote
    assert source.filename == "sample.bam"
    assert source.path == "/data/sample.bam"


def test_string_url_is_remote():
    source = to_source("https://example.org/data/sample.cram?token=1")
    assert isinstance(source, RemoteSource)
    assert source.is_remote and not source.is_local
    assert source.filename == "sample.cram"


def test_file_url_becomes_local():
    source = to_source("file:///tmp/ref.fa")
    assert isinstance(source, LocalSource)
    assert source.location == Path("/tmp/ref.fa")


def test_url_value_and_pathlike():
    assert isinstance(to_source(urlparse("ftp://host/a.vcf.gz")), RemoteSource)
    assert isinstance(to_source(Path("a.vcf")), LocalSource)


def test_named_file_object(tmp_path):
    path = tmp_path / "x.sam"
    path.write_text("@HD\tVN:1.6\n")
    with open(path, "rb") as handle:
        assert to_source(handle) == LocalSource(path)


def test_unsupported_inputs_are_absent():
    assert to_source(None) is None
    assert to_source(42) is None
    assert to_source(io.BytesIO(b"")) is None


def test_find_source_errors():
    with pytest.raises(InputError):
        find_source(None)
    with pytest.raises(InputError, match="Cannot convert"):
        find_source(3.14)
    with pytest.raises(InputError, match="no valid suffixes"):
        find_source("reads.txt.bz2", accept=is_vcf)


def test_resolve_sibling_local_and_remote():
    local = LocalSource(Path("/data/ref.fa"))
    assert local.resolve_sibling("ref.dict") == LocalSource(Path("/data/ref.dict"))

    remote = RemoteSource("https://host/genomes/ref.fa?sig=abc")
    sibling = remote.resolve_sibling("ref.fa.fai")
    assert isinstance(sibling, RemoteSource)
    assert sibling.url == "https://host/genomes/ref.fa.fai"


@pytest.mark.parametrize(
    "url, reference, expected",
    [
        ("https://host/genomes/hg38/ref.fa", "../shared/ref.dict", "https://host/genomes/shared/ref.dict"),
        ("https://host/genomes/hg38/ref.fa", "/indexes/ref.fa.fai", "https://host/indexes/ref.fa.fai"),
        ("s3://bucket/genomes/hg38/ref.fa", "../ref.dict", "s3://bucket/genomes/ref.dict"),
        ("ftp://host/ref.fa", "https://mirror/ref.dict", "https://mirror/ref.dict"),
    ],
)
def test_remote_sibling_is_a_uri_reference(url, reference, expected):
    assert RemoteSource(url).resolve_sibling(reference).url == expected


def test_basename_strips_last_extension():
    assert to_source("/x/ref.fa.gz").basename == "ref.fa"
    assert to_source("/x/README").basename == ""


def test_suffix_predicates_are_case_sensitive_and_filename_only():
    assert is_vcf(to_source("a.vcf.bgz"))
    assert is_vcf(to_source("a.vcf.gz")) and is_bgzip_generic(to_source("a.vcf.gz"))
    assert not is_vcf(to_source("a.VCF"))
    assert not is_fasta(to_source("/ref.fa/notes"))
    assert is_alignment(to_source("a.cram"))
    assert is_interval_list(to_source("a.interval_list.gz"))


def test_remote_open_uses_urlopen(monkeypatch):
    opened = []

    def fake_urlopen(url):
        opened.append(url)
        return io.BytesIO(b"payload")

    monkeypatch.setattr(sources, "urlopen", fake_urlopen)
    with RemoteSource("http://host/a.vcf").open_stream() as stream:
        assert stream.read() == b"payload"
    assert opened == ["http://host/a.vcf"]


def test_remote_open_rejects_unknown_scheme():
    with pytest.raises(HtsIOError, match="s3"):
        RemoteSource("s3://bucket/a.bam").open_stream()


def test_local_open_missing_file_raises(tmp_path):
    with pytest.raises(OSError):
        LocalSource(tmp_path / "missing.vcf").open_stream()


def test_open_text_inflates_gzip(vcf_gz_path, vcf_text):
    with LocalSource(vcf_gz_path).open_text() as handle:
        assert handle.read() == vcf_text

from __future__ import annotations

import gzip
from pathlib import Path

import pytest

from htsprobe import builds
from tests.hts_fixtures import bcf_bytes

VCF_TEXT = (
    "##fileformat=VCFv4.2\n"
    '##FILTER=<ID=PASS,Description="All filters passed">\n'
    "##contig=<ID=chr1,length=248956422,md5=2648ae1bacce4ec4b6cf337dcae37816>\n"
    "##contig=<ID=chr2,length=242193529>\n"
    "##contig=<ID=chrM,length=16569>\n"
    '##FORMAT=<ID=GT,Number=1,Type=String,Description="Genotype">\n'
    "#CHROM\tPOS\tID\tREF\tALT\tQUAL\tFILTER\tINFO\tFORMAT\tS1\tS2\n"
    "chr1\t100\t.\tA\tG\t.\tPASS\t.\tGT\t0/1\t1/1\n"
)


def pytest_collection_modifyitems(items: list[pytest.Item]) -> None:
    """Mark all tests under tests/unit as unit tests."""
    for item in items:
        path = Path(str(item.fspath)).as_posix()
        if "/tests/unit/" in f"/{path}":
            item.add_marker(pytest.mark.unit)


@pytest.fixture
def vcf_text() -> str:
    return VCF_TEXT


@pytest.fixture
def vcf_path(tmp_path: Path) -> Path:
    path = tmp_path / "calls.vcf"
    path.write_text(VCF_TEXT, encoding="utf-8")
    return path


@pytest.fixture
def vcf_gz_path(tmp_path: Path) -> Path:
    path = tmp_path / "calls.vcf.gz"
    path.write_bytes(gzip.compress(VCF_TEXT.encode("utf-8")))
    return path


@pytest.fixture
def bcf_path(tmp_path: Path) -> Path:
    path = tmp_path / "calls.bcf"
    path.write_bytes(gzip.compress(bcf_bytes(VCF_TEXT)))
    return path


@pytest.fixture
def fresh_default_catalog():
    builds._DEFAULT.reset()
    yield
    builds._DEFAULT.reset()

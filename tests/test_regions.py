from __future__ import annotations

import pytest

from deucalion.provider.errors import BadRegion
from deucalion.provider.regions import resolve_region


def test_known_region_is_normalised():
    assert resolve_region(" US-East-1 ") == "us-east-1"


@pytest.mark.parametrize("name", [None, "", "us east 1", "mars-north-9"])
def test_bad_regions(name):
    with pytest.raises(BadRegion):
        resolve_region(name)

import pytest

from engine import MemoryConfig, Translator, make_policy


def build_page_image(config):
    # byte at logical index i is (page + i) % 256, so pages differ from each other
    return bytes(((i // config.page_size) + i) % 256 for i in range(config.logical_memory_size))


@pytest.fixture
def page_image():
    return build_page_image


@pytest.fixture
def small_config():
    return MemoryConfig(frames=2)


@pytest.fixture
def make_translator():
    def _make(policy="FIFO", config=None):
        config = config or MemoryConfig()
        return Translator(build_page_image(config), make_policy(policy, config.frames), config)
    return _make

import pytest
import decimalify.error


def pytest_addoption(parser):
    parser.addoption(
        "--decimalify-debug",
        action="store_true",
        default=False,
        help="Enable debug output from the decimalify passes",
    )


@pytest.fixture(autouse=True)
def configure_decimalify_debug(request):
    """Automatically configure decimalify.error.debug based on --decimalify-debug flag."""
    original_debug = decimalify.error.debug
    decimalify.error.debug = request.config.getoption("--decimalify-debug")
    yield
    decimalify.error.debug = original_debug

from dotenv import load_dotenv

from tests.test_fixtures import (  # noqa: F401
    fixed_target_config,
    image_dir,
    make_image,
    observer,
    ratio_config,
    shrink_by_two,
)

# Ensure environment variables from .env are available during test collection
load_dotenv()

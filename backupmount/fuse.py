#!/usr/bin/env python3
# -*- coding: utf-8 -*-
# This file is supposed to provide the 'fuse' symbol.
# pylint: disable=unused-import

import logging
import sys

logger = logging.getLogger(__name__)

# mfusepy is the maintained fork of fusepy. Both need the libfuse shared library at import time,
# which is why OSError has to be caught, too.
try:
    import mfusepy as fuse  # type: ignore
except (ImportError, OSError) as mfusepyException:
    logger.warning("Failed to load mfusepy. Will try to load fusepy. Exception was: %s", mfusepyException)
    try:
        import fuse  # type: ignore
    except (ImportError, OSError) as fuseException:
        # Some distributions install fusepy under its distribution name.
        try:
            import fusepy as fuse  # type: ignore
        except (ImportError, OSError) as fusepyException:
            logger.error("Did not find any usable FUSE binding. Please install libfuse, e.g., with:")
            logger.error(" - apt install libfuse2")
            logger.error(" - yum install fuse fuse-libs")
            logger.error("Exception for mfusepy: %s", mfusepyException)
            logger.error("Exception for fuse: %s", fuseException)
            logger.error("Exception for fusepy: %s", fusepyException)
            sys.exit(1)

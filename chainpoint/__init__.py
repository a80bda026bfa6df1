# Copyright (C) 2019 The Chainpoint Client developers
#
# This file is part of the Chainpoint Client.
#
# It is subject to the license terms in the LICENSE file found in the top-level
# directory of this distribution.
#
# No part of the Chainpoint Client, including this file, may be copied,
# modified, propagated, or distributed except according to the terms contained
# in the LICENSE file.

"""Client library for the Chainpoint timestamping network"""

__version__ = '0.1.0'

USER_AGENT = 'chainpoint-client/%s' % __version__

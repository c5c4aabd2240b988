"""Validation rule codes."""

# File structure
FILE_003 = "V-FILE-003"  # version present
FILE_004 = "V-FILE-004"  # version is semver
FILE_005 = "V-FILE-005"  # required sections present
META_001 = "V-META-001"  # metadata.created
META_002 = "V-META-002"  # metadata.lastModified

# Currencies
CUR_001 = "V-CUR-001"  # code format, non-empty set
CUR_002 = "V-CUR-002"  # code unique
CUR_003 = "V-CUR-003"  # name
CUR_004 = "V-CUR-004"  # symbol
CUR_005 = "V-CUR-005"  # decimal places 0..8
CUR_006 = "V-CUR-006"  # exactly one default
CUR_007 = "V-CUR-007"  # default matches metadata
CUR_008 = "V-CUR-008"  # rate date
CUR_009 = "V-CUR-009"  # rate > 0
CUR_010 = "V-CUR-010"  # rate == 1.0 (warning)
CUR_011 = "V-CUR-011"  # rate dates unique
CUR_012 = "V-CUR-012"  # no rates on the default currency

# Accounts
ACC_001 = "V-ACC-001"  # id format
ACC_002 = "V-ACC-002"  # id unique
ACC_003 = "V-ACC-003"  # name present
ACC_004 = "V-ACC-004"  # name unique
ACC_005 = "V-ACC-005"  # type
ACC_006 = "V-ACC-006"  # currency exists
ACC_007 = "V-ACC-007"  # opened date
ACC_008 = "V-ACC-008"  # closed date
ACC_009 = "V-ACC-009"  # at least two name segments
ACC_010 = "V-ACC-010"  # first segment equals type
ACC_011 = "V-ACC-011"  # no empty segments

# Transactions and postings
TXN_001 = "V-TXN-001"  # id format
TXN_002 = "V-TXN-002"  # id unique
TXN_003 = "V-TXN-003"  # date
TXN_004 = "V-TXN-004"  # description
TXN_005 = "V-TXN-005"  # at least two postings
TXN_006 = "V-TXN-006"  # date in the future (warning)
POST_001 = "V-POST-001"  # account exists
POST_002 = "V-POST-002"  # amount non-zero
POST_003 = "V-POST-003"  # currency matches account
POST_004 = "V-POST-004"  # date on or after account opened
POST_005 = "V-POST-005"  # date on or before account closed
POST_007 = "V-POST-007"  # decimal precision
BAL_001 = "V-BAL-001"  # per-currency sum within tolerance
BAL_002 = "V-BAL-002"  # multi-currency needs an exchange rate
FX_001 = "V-FX-001"  # posting rate > 0
FX_004 = "V-FX-004"  # equivalent amount matches amount x rate

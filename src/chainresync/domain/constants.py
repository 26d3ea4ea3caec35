"""
Fixed registry coordinates of the chain cache resync value.
"""

REGISTRY_KEY_PATH = (
    "SOFTWARE\\Microsoft\\Cryptography\\OID\\EncodingType 0\\"
    "CertDllCreateCertificateChainEngine\\Config\\"
)
REGISTRY_VALUE_NAME = "ChainCacheResyncFiletime"

# HKEY_LOCAL_MACHINE as addressed through WMI StdRegProv
HKEY_LOCAL_MACHINE = 2147483650

FILETIME_SIZE = 8

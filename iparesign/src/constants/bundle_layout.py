# Names fixed by the iOS archive and bundle layout.
PAYLOAD_DIR = "Payload"
APP_BUNDLE_SUFFIX = ".app"
IPA_SUFFIX = ".ipa"

INFO_PLIST = "Info.plist"
BUNDLE_ID_KEY = "CFBundleIdentifier"
EMBEDDED_PROFILE = "embedded.mobileprovision"
FRAMEWORKS_DIR = "Frameworks"

ENTITLEMENTS_FILE = "entitlements.plist"
SCRATCH_PREFIX = "iparesign-"

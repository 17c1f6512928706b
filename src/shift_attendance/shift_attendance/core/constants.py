"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

DEFAULT_LATE_GRACE_MINUTES = 5
DEFAULT_REPORT_DAYS = 7
MANAGER_REPORT_DAYS = 3

EARTH_RADIUS_METERS = 6_371_000
DEFAULT_FENCE_RADIUS_METERS = 100

LOCATION_TIMEOUT_SECONDS = 5.0
VERIFICATION_DELAY_SECONDS = 1.5

AUDIT_MANAGER_CLOSING = "QUẢN LÝ BỔ SUNG BÁO CÁO"
AUDIT_MANAGER_CLOSING_COMMENT = "Dữ liệu chốt ca được Quản lý bổ sung thủ công sau khi nhân viên bỏ qua."
AUDIT_RECONCILE = "ĐỐI SOÁT & DUYỆT"
AUDIT_RECONCILE_DEFAULT_COMMENT = "Đối soát ca trực hoàn tất."

FIELD_LABEL_CASH = "Tiền mặt"
FIELD_LABEL_TRANSFER = "Chuyển khoản"

SHIFT_STATUS_LABELS = {
    "COMPLETED": "Hoàn thành",
    "PENDING": "Đang trực",
    "ABSENT": "Vắng mặt",
}

DAY_OF_WEEK_LABELS = ("Thứ 2", "Thứ 3", "Thứ 4", "Thứ 5", "Thứ 6", "Thứ 7", "CN")

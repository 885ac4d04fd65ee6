"""Vendor and SoC lookup tables used to label chips."""

# (vendor keyword, [(soc keyword, label), ...], vendor-only label)
COMPATIBLE_TABLE: list[tuple[str, list[tuple[str, str]], str]] = [
    (
        "rockchip",
        [
            ("rk3399", "Rockchip RK3399"),
            ("rk3568", "Rockchip RK3568"),
            ("rk3588", "Rockchip RK3588"),
        ],
        "Rockchip",
    ),
    (
        "amlogic",
        [
            ("g12", "Amlogic G12"),
            ("s905", "Amlogic S905"),
            ("s922", "Amlogic S922"),
        ],
        "Amlogic",
    ),
    ("allwinner", [], "Allwinner"),
    ("broadcom", [], "Broadcom"),
    ("qualcomm", [], "Qualcomm"),
    ("nvidia", [], "Nvidia Jetson"),
]

CPU_IMPLEMENTERS: dict[str, str] = {
    "0x41": "ARM",
    "0x42": "Broadcom",
    "0x51": "Qualcomm",
}


def match_compatible(compatible: str) -> str | None:
    """Map a device-tree compatible string to a chip label."""
    compatible = compatible.replace("\0", " ").lower()
    for vendor, socs, vendor_label in COMPATIBLE_TABLE:
        if vendor not in compatible:
            continue
        for soc, label in socs:
            if soc in compatible:
                return label
        return vendor_label
    return None

import datetime

import pytest

from sysautomate.backup import backup_configs
from sysautomate.errors import BackupError


def test_backup_configs_copies_with_date_suffix(tmp_path):
    fstab = tmp_path / "etc" / "fstab"
    fstab.parent.mkdir()
    fstab.write_text("UUID=abc / ext4 defaults 0 1\n")
    missing = tmp_path / "etc" / "hosts"
    dest = tmp_path / "SystemBackups"

    saved, failed = backup_configs([str(fstab), str(missing)], dest, today=datetime.date(2024, 7, 1))

    assert saved == [dest / "fstab.backup.2024-07-01"]
    assert saved[0].read_text() == fstab.read_text()
    assert failed == [str(missing)]


def test_backup_dir_that_cannot_be_created(tmp_path):
    blocker = tmp_path / "not-a-dir"
    blocker.write_text("")
    with pytest.raises(BackupError):
        backup_configs([], blocker / "backups")

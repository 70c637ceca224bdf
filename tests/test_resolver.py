import pytest

from fmcsadmin import resolver

from conftest import client, database

LINUX_FOLDER = "filelinux:/opt/FileMaker/FileMaker Server/Data/Databases/"


@pytest.fixture
def listing():
    return resolver.parse_databases(
        [
            database(1, "Sales.fmp12"),
            database(2, "Inventory.fmp12", "CLOSED", hint="pet name"),
            database(3, "Archive.fmp12", "PAUSED", folder=LINUX_FOLDER + "old/"),
            database(4, "Mac.fmp12", "CLOSED", folder="filemac:/Macintosh HD/Library/FileMaker Server/Data/Databases/"),
            database(5, "Win.fmp12", "CLOSED", folder="filewin:/C:/Program Files/FileMaker/FileMaker Server/Data/Databases/"),
        ]
    )


def test_no_args_selects_every_database_with_status(listing):
    assert resolver.resolve_databases(listing, [], "CLOSED", volume_name="").ids == [2, 4, 5]
    assert resolver.resolve_databases(listing, [], volume_name="").ids == [1, 2, 3, 4, 5]


@pytest.mark.parametrize("arg", ["Sales", "Sales.fmp12", "1"])
def test_name_and_id_spellings_match(listing, arg):
    assert resolver.resolve_databases(listing, [arg], volume_name="").ids == [1]


def test_name_match_is_case_sensitive(listing):
    assert resolver.resolve_databases(listing, ["sales.FMP12"], volume_name="").ids == []


def test_folder_argument_selects_contained_files(listing):
    resolution = resolver.resolve_databases(
        listing, ["/opt/FileMaker/FileMaker Server/Data/Databases/old/"], volume_name=""
    )
    assert resolution.ids == [3]


def test_duplicate_arguments_resolve_once(listing):
    assert resolver.resolve_databases(listing, ["Sales", "1", "Sales.fmp12"], volume_name="").ids == [1]


def test_mac_volume_spellings_are_equivalent():
    tagged = "filemac:/Macintosh HD/Library/FileMaker Server/Data/Databases/Mac.fmp12"
    assert resolver.compare_path(tagged, "/Volumes/Macintosh HD/Library/FileMaker Server/Data/Databases/Mac", "Macintosh HD")
    assert resolver.compare_path(tagged, "/Library/FileMaker Server/Data/Databases/Mac.fmp12", "Macintosh HD")
    assert resolver.compare_path("/Library/FileMaker Server/Data/Databases/Mac.fmp12", tagged, "Macintosh HD")


def test_windows_paths_compare_with_either_separator():
    tagged = "filewin:/C:/Program Files/FileMaker/Data/Databases/Win.fmp12"
    assert resolver.compare_path(tagged, r"C:\Program Files\FileMaker\Data\Databases\Win", "")


def test_full_path_names_use_host_spelling(listing):
    resolution = resolver.resolve_databases(listing, [], "CLOSED", full_path=True, volume_name="")
    assert resolution.names == [
        "/opt/FileMaker/FileMaker Server/Data/Databases/Inventory.fmp12",
        "/Volumes/Macintosh HD/Library/FileMaker Server/Data/Databases/Mac.fmp12",
        r"C:\Program Files\FileMaker\FileMaker Server\Data\Databases\Win.fmp12",
    ]


def test_resolution_carries_decrypt_hints(listing):
    resolution = resolver.resolve_databases(listing, ["Inventory"], "CLOSED", volume_name="")
    assert resolution.hints == ["pet name"]
    assert resolution


def test_clients_match_by_guest_file():
    clients = resolver.parse_clients(
        [client(10, "Sales.fmp12"), client(11, "Inventory.fmp12"), client(12)]
    )
    assert resolver.resolve_clients(clients, ["Sales"], "NORMAL", volume_name="") == [10]
    assert resolver.resolve_clients(clients, ["/any/folder/Inventory.fmp12"], volume_name="") == [11]
    assert resolver.resolve_clients(clients, volume_name="") == [10, 11, 12]


def test_schedule_parsing_labels_task_types():
    schedules = resolver.parse_schedules(
        [
            {"id": "1", "name": "Daily", "backupType": {"resourceType": "ALL_DB"}, "enabled": True},
            {"id": "2", "name": "Verify", "verifyType": {"resourceType": "ALL_DB"}},
            {"name": "missing id"},
        ]
    )
    assert [(s.id, s.task_type) for s in schedules] == [(1, "Backup"), (2, "Verify")]

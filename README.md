# sqfsread

`sqfsread` is a pure-Python library of building blocks for reading SquashFS
version 4.0 images. It uses only the standard library.

## Modules

| Module | Contents |
| --- | --- |
| `sqfsread.format` | Format constants; the `Compression` and `InodeType` enums; the record classes `SuperBlock` (with `has_flag`), `DirIndex`, `DirHeader`, `DirEntry`, `FragmentEntry`, `XattrEntry`, `XattrVal`, `XattrId` and `XattrIdTable`; `unpack` and `record_size` for those records; `Inode` and `decode_inode`; `file_mode`, `makedev`, `read_le` and `swap16`. Short or malformed data raises `SquashfsError`. |
| `sqfsread.stack` | `Stack`, a LIFO with `push`, `pop`, `top`, `at`, `clear` and `len()`, and an optional `on_pop` callback that sees every removed value. |
| `sqfsread.table` | `load_table`, which reads the block pointers of a lookup table, and `Table.get`, which returns the raw bytes of one entry. |
| `sqfsread.util` | `pread` (works on a file descriptor or a binary file object), `open_image_file`, the message builders `version_message` and `compression_message`, `enoattr`, and `OpenError`. |
| `sqfsread.stat` | `build_stat`, which fills a `StatResult` from an `Inode`. |
| `sqfsread.inodemap` | `create_inode_map` and the mappings `Inode64Map`, `Inode32Map` and `Inode32ExportMap`. |
| `sqfsread.xattr` | `XattrIterator`, `open_xattrs`, `lookup_xattr`, `read_xattr_id_table`, `split_prefix`, `metadata_cursor` and `MetadataCursor`. |
| `sqfsread.traverse` | `Traversal`, `TraverseItem` and `list_paths`. |

## Decoding records

```python
from sqfsread.format import SuperBlock, record_size, unpack, Compression, FLAG_EXPORT
from sqfsread.util import open_image_file, pread

with open_image_file("image.sqfs") as image:
    sb = unpack(SuperBlock, pread(image, record_size(SuperBlock), 0))

print(hex(sb.s_magic), Compression(sb.compression).name, sb.has_flag(FLAG_EXPORT))
```

`open_image_file` prints a message to stderr and raises `OpenError` when the
file cannot be opened.

`decode_inode` turns the bytes of an inode into an `Inode`, reading the fields
that belong to its type (directory, long directory, regular and long regular
file, symlink, device, FIFO and socket, plain and extended). The `mode` of the
result already carries the file-type bits given by `file_mode`.

## Stat results

`build_stat(inode, block_size, lookup_id, uid=0, gid=0)` sets mode, link
count, the three timestamps and the block size. Regular files get a size and a
512-byte block count, symlinks get the target length as size, and block and
character devices get `st_rdev`. `lookup_id` maps an id-table index to a real
uid or gid; a positive `uid` or `gid` argument is used instead. `st_ino` is
left at 0 for the caller to fill.

## Lookup tables and extended attributes

`Table.get(idx, read_block)` and the xattr functions do not read metadata
blocks themselves. The caller provides:

* `read_block(position)`: returns the decompressed contents of the metadata
  block at that on-disk position;
* a reader `reader(cursor, size)`: returns `size` bytes starting at a
  `MetadataCursor` and the cursor just after them, crossing block boundaries
  as needed.

`read_xattr_id_table(source, start, offset=0)` reads the xattr id table header
and its block pointers; it returns `(None, empty table)` when the superblock
marks the table absent. `lookup_xattr(...)` returns the value of a named
attribute, or `None` when the inode does not have it. An `XattrIterator` can
also be iterated for `(name, value)` pairs, names including their prefix.
Only the `user.`, `trusted.` and `security.` namespaces exist; `split_prefix`
raises `ValueError` for any other, and `find` treats such a name as not found.

## Inode numbering

FUSE-style inode numbers reserve 0 for "no entry" and 1 for the root.
`create_inode_map(root_id, root_number=None, ino_width=8, export_lookup=None,
inode_number_of=None)` picks a mapping:

* `ino_width >= 6`: `Inode64Map` uses the inode reference itself, with the
  root mapped to 1 and reference 0 mapped to 2;
* otherwise, with `export_lookup`: `Inode32ExportMap` uses inode numbers and
  resolves them through that lookup;
* otherwise `Inode32Map` keeps a reference-counted cache filled by `register`
  and emptied by `forget`.

The narrow mappings need `root_number` and `inode_number_of`, or
`ValueError` is raised. Every mapping has `to_fuse`, `to_sqfs`,
`entry_to_fuse`, `register` and `forget`. Failed lookups return
`FUSE_INODE_NONE` (0) or `INODE_NONE` (1) rather than raising.

## Walking a tree

`Traversal(open_dir, root)` walks everything below `root` depth first, in the
order `open_dir` returns entries. `open_dir` is called with `root` and then
with each directory entry to descend into. An entry needs a `name` (`str` or
`bytes`) and an `is_dir` attribute or method. Each step is a `TraverseItem`
with the path relative to `root`, components joined by `/`; after a
subdirectory's contents an extra item with `dir_end=True` marks its end.
`prune()` straight after a directory entry skips its contents. A `Traversal` is
also a context manager; `close()` ends it.

```python
from dataclasses import dataclass, field
from sqfsread.traverse import list_paths

@dataclass
class Node:
    name: str
    is_dir: bool = False
    children: list = field(default_factory=list)

root = Node("", True, [Node("etc", True, [Node("hosts")]), Node("README")])
print(list_paths(lambda node: node.children, root))
# ['etc', 'etc/hosts', 'README']
```

## What the package does not do

It does not decompress data or metadata blocks, open a whole image as a
filesystem, read directories or file contents, or mount anything; there is no
command-line tool. Those parts are left to the caller, who connects them
through the `read_block`, `reader`, `lookup_id` and `open_dir` callables
described above.

## Running the tests

Install the package with its `test` extra and run `pytest` from the project
root.
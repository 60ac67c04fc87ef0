"""Long-form help shown by ``palimp help``."""

CONCEPTUAL_HELP = """\
# palimp

palimp manages the `sketch/*` branches that a coding agent leaves behind and
lands them onto your main branch as a straight line of commits.

## Concepts

**Sketch branches.** Disposable feature branches named `sketch/<something>`.
Every command accepts the name with or without the `sketch/` prefix.

**Landing, not merging.** `palimp land` cherry-picks each new commit onto main
and deletes the branch. No merge commits are ever created.

**Change-Id deduplication.** A `Change-Id: <token>` trailer identifies a change
across rebases and cherry-picks. Commits whose Change-Id is already on main are
skipped, so landing the same work twice adds nothing.

**Main branch detection.** The first existing branch out of `main`, `master`,
`trunk`, `develop`, `default` and `stable` is main. Override the list with
`main_branch_candidates` in `.palimp.json` or `PALIMP_MAIN_BRANCHES`.

## Statuses shown by `palimp list`

- `CLEAN`: the remaining commits cherry-pick without conflicts.
- `CONFLICT`: some commit would conflict with main.
- `LANDED`: every commit is already on main by Change-Id.
- `EMPTY`: nothing left to apply (no commits, or they change nothing on main).
- `ERROR`: the branch could not be analyzed.

## Safety

palimp refuses to run while a merge, rebase, cherry-pick, revert or bisect is
in progress, or while there are staged or unstaged changes. `land` and
`update` also require main to be checked out (`land --force` skips that).

Conflicts are detected before anything changes. If a cherry-pick still fails
part-way, palimp stops and prints how to abort or reset; it does not roll back
on its own.

## Workflows

    palimp list                  # what is there, and can it land?
    palimp land -n my-feature    # preview
    palimp land my-feature       # land it
    palimp land -s my-feature    # land as one squashed commit
    palimp update my-feature     # rebase onto the latest main
    palimp drop my-feature       # throw it away

Every command takes `--dry-run` (`-n`). When something goes wrong,
`git reflog` shows where HEAD has been.
"""

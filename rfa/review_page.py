from __future__ import annotations

import json
from html import escape

DEFAULT_PAGE_TITLE = "Review uncommitted changes"


def render_review_page(
    *,
    page_title: str | None = None,
    diff_url: str = "/api/diff",
    submit_url: str = "/api/comments",
) -> str:
    """Self-contained review page: fetches the diff, collects comments, submits them."""
    config = {"diffUrl": diff_url, "submitUrl": submit_url}
    return _PAGE_TEMPLATE.format(
        title=escape(page_title or DEFAULT_PAGE_TITLE),
        config_json=json.dumps(config, ensure_ascii=False).replace("</", "<\\/"),
    )


_PAGE_TEMPLATE = """<!doctype html>
<html lang="en">
<head>
  <meta charset="utf-8">
  <meta name="viewport" content="width=device-width, initial-scale=1">
  <title>{title}</title>
  <style>
    body {{
      margin: 0;
      font-family: -apple-system, "Segoe UI", Helvetica, Arial, sans-serif;
      color: #1f2328;
      background: #f6f8fa;
    }}
    header {{
      position: sticky;
      top: 0;
      z-index: 2;
      display: flex;
      gap: 12px;
      align-items: center;
      padding: 10px 16px;
      background: #fff;
      border-bottom: 1px solid #d0d7de;
    }}
    header h1 {{ font-size: 16px; margin: 0; flex: 1; }}
    button {{
      font: inherit;
      padding: 4px 10px;
      border: 1px solid #d0d7de;
      border-radius: 6px;
      background: #f6f8fa;
      cursor: pointer;
    }}
    button.primary {{ background: #1f883d; border-color: #1a7f37; color: #fff; }}
    main {{ padding: 16px; max-width: 1200px; margin: 0 auto; }}
    textarea {{ width: 100%; box-sizing: border-box; font: inherit; min-height: 60px; }}
    .file {{ background: #fff; border: 1px solid #d0d7de; border-radius: 6px; margin-bottom: 16px; }}
    .file-head {{
      display: flex;
      justify-content: space-between;
      align-items: center;
      padding: 6px 10px;
      border-bottom: 1px solid #d0d7de;
      font-family: ui-monospace, Menlo, monospace;
      font-size: 13px;
    }}
    table.diff {{ width: 100%; border-collapse: collapse; font-family: ui-monospace, Menlo, monospace; font-size: 12px; }}
    table.diff td {{ padding: 0 8px; white-space: pre-wrap; vertical-align: top; }}
    td.num {{ width: 1%; color: #6e7781; text-align: right; cursor: pointer; user-select: none; }}
    td.num.empty {{ cursor: default; }}
    tr.add td.code, td.code.add {{ background: #e6ffec; }}
    tr.del td.code, td.code.del {{ background: #ffebe9; }}
    td.code.empty {{ background: #f6f8fa; }}
    table.diff.split td.code {{ width: 49%; }}
    button.active {{ background: #0969da; border-color: #0969da; color: #fff; }}
    #file-list {{ background: #fff; border: 1px solid #d0d7de; border-radius: 6px; margin-bottom: 16px; padding: 6px 10px; }}
    #file-list .entry {{ display: flex; gap: 8px; font-family: ui-monospace, Menlo, monospace; font-size: 13px; }}
    #file-list .entry a {{ flex: 1; color: #0969da; text-decoration: none; }}
    .stat-add {{ color: #1a7f37; }}
    .stat-del {{ color: #cf222e; }}
    tr.hunk td {{ background: #ddf4ff; color: #57606a; }}
    tr.selected td {{ outline: 1px solid #bf8700; background: #fff8c5; }}
    .note {{ margin: 6px 10px; padding: 8px; border-left: 3px solid #0969da; background: #f6f8fa; white-space: pre-wrap; }}
    .note .meta {{ font-size: 12px; color: #57606a; }}
    .editor {{ margin: 6px 10px; }}
    .empty-state {{ text-align: center; color: #57606a; padding: 40px; }}
    #status {{ font-size: 13px; color: #57606a; }}
  </style>
</head>
<body>
  <header>
    <h1>{title}</h1>
    <span id="status"></span>
    <button id="view-unified" class="active" type="button">Unified</button>
    <button id="view-split" type="button">Split</button>
    <button id="submit-review" class="primary" type="button">Submit review</button>
  </header>
  <main>
    <section class="file">
      <div class="file-head">Overall comment</div>
      <div class="editor"><textarea id="global-comment" placeholder="Optional comment about the whole change (Cmd/Ctrl+Enter submits)"></textarea></div>
    </section>
    <nav id="file-list"></nav>
    <div id="diff-container"><div class="empty-state">Loading diff...</div></div>
  </main>
  <script id="review-config-json" type="application/json">{config_json}</script>
  <script>
    (function () {{
      const config = JSON.parse(document.getElementById("review-config-json").textContent);
      const container = document.getElementById("diff-container");
      const statusNode = document.getElementById("status");
      const fileListNode = document.getElementById("file-list");
      const globalInput = document.getElementById("global-comment");
      let diffText = "";
      let comments = [];
      let selection = null;
      let viewMode = "unified";

      function isPrimarySubmitHotkey(event) {{
        return event.key === "Enter" && (event.metaKey || event.ctrlKey);
      }}

      function el(tag, className, text) {{
        const node = document.createElement(tag);
        if (className) node.className = className;
        if (text !== undefined) node.textContent = text;
        return node;
      }}

      function rangeStart(token) {{
        const head = token.slice(1).split(",")[0];
        return /^[0-9]+$/.test(head) ? Number(head) : null;
      }}

      function hunkStarts(line) {{
        const parts = line.split("@@");
        let oldStart = null;
        let newStart = null;
        if (parts.length < 2) return [oldStart, newStart];
        for (const token of parts[1].trim().split(/\\s+/)) {{
          if (token.startsWith("-")) oldStart = rangeStart(token);
          else if (token.startsWith("+")) newStart = rangeStart(token);
        }}
        return [oldStart, newStart];
      }}

      function parseDiff(text) {{
        const files = [];
        const byPath = new Map();
        let current = null;
        let oldLine = 0;
        let newLine = 0;
        for (const line of text.split("\\n")) {{
          if (line.startsWith("+++ b/")) {{
            const path = line.slice(6);
            current = byPath.get(path);
            if (!current) {{
              current = {{ path: path, rows: [], additions: 0, deletions: 0 }};
              byPath.set(path, current);
              files.push(current);
            }}
            continue;
          }}
          if (line.startsWith("diff --git")) {{ current = null; continue; }}
          if (/^(--- |index |new file|deleted file)/.test(line)) continue;
          if (line.startsWith("@@ ")) {{
            const starts = hunkStarts(line);
            if (starts[0] !== null) oldLine = starts[0];
            if (starts[1] !== null) newLine = starts[1];
            if (current) current.rows.push({{ kind: "hunk", text: line }});
            continue;
          }}
          if (!current) continue;
          if (line.startsWith("-")) {{
            current.rows.push({{ kind: "del", oldNo: oldLine++, newNo: null, text: line }});
            current.deletions++;
          }} else if (line.startsWith("+")) {{
            current.rows.push({{ kind: "add", oldNo: null, newNo: newLine++, text: line }});
            current.additions++;
          }} else if (line.startsWith(" ") || line === "") {{
            current.rows.push({{ kind: "ctx", oldNo: oldLine++, newNo: newLine++, text: line }});
          }}
        }}
        return files;
      }}

      function anchorLabel(comment) {{
        if (comment.startLine === null) return "file";
        const side = comment.side === "left" ? "old" : "new";
        if (comment.startLine === comment.endLine) return side + " line " + comment.startLine;
        return side + " lines " + comment.startLine + "-" + comment.endLine;
      }}

      function isSelected(file, side, lineNo) {{
        if (!selection || selection.file !== file || selection.side !== side || lineNo === null) return false;
        return lineNo >= selection.startLine && lineNo <= selection.endLine;
      }}

      function select(file, side, lineNo, extend) {{
        if (extend && selection && selection.file === file && selection.side === side) {{
          const anchor = selection.anchor;
          selection.startLine = Math.min(anchor, lineNo);
          selection.endLine = Math.max(anchor, lineNo);
        }} else {{
          selection = {{ file: file, side: side, anchor: lineNo, startLine: lineNo, endLine: lineNo }};
        }}
        render();
      }}

      function editor(onSave) {{
        const box = el("div", "editor");
        const input = el("textarea");
        const save = el("button", "primary", "Add comment");
        const cancel = el("button", "", "Cancel");
        save.type = "button";
        cancel.type = "button";
        save.addEventListener("click", function () {{
          if (input.value.trim()) onSave(input.value);
        }});
        cancel.addEventListener("click", function () {{
          selection = null;
          render();
        }});
        input.addEventListener("keydown", function (event) {{
          if (!isPrimarySubmitHotkey(event)) return;
          event.preventDefault();
          if (input.value.trim()) onSave(input.value);
        }});
        box.append(input, save, cancel);
        setTimeout(function () {{ input.focus(); }}, 0);
        return box;
      }}

      function noteNode(comment) {{
        const note = el("div", "note");
        const meta = el("div", "meta", anchorLabel(comment) + " ");
        const remove = el("button", "", "Delete");
        remove.type = "button";
        remove.addEventListener("click", function () {{
          comments = comments.filter(function (item) {{ return item !== comment; }});
          render();
        }});
        meta.append(remove);
        note.append(meta, el("div", "", comment.body));
        return note;
      }}

      function numCell(file, side, lineNo) {{
        const cell = el("td", lineNo === null ? "num empty" : "num", lineNo === null ? "" : String(lineNo));
        if (lineNo !== null) {{
          cell.addEventListener("click", function (event) {{ select(file, side, lineNo, event.shiftKey); }});
        }}
        return cell;
      }}

      function splitRows(rows) {{
        const out = [];
        let dels = [];
        let adds = [];
        const flush = function () {{
          for (let i = 0; i < Math.max(dels.length, adds.length); i++) {{
            out.push({{ kind: "pair", left: dels[i] || null, right: adds[i] || null }});
          }}
          dels = [];
          adds = [];
        }};
        for (const row of rows) {{
          if (row.kind === "del") dels.push(row);
          else if (row.kind === "add") adds.push(row);
          else {{
            flush();
            out.push(row.kind === "ctx" ? {{ kind: "pair", left: row, right: row }} : row);
          }}
        }}
        flush();
        return out;
      }}

      function codeCell(row) {{
        if (!row) return el("td", "code empty", "");
        return el("td", "code " + row.kind, row.text);
      }}

      function annotationRow(path, oldNo, newNo, colSpan) {{
        const endsHere = function (side, lineNo) {{
          return lineNo !== null && selection && selection.file === path && selection.side === side && selection.endLine === lineNo;
        }};
        const attached = comments.filter(function (comment) {{
          if (comment.file !== path || comment.startLine === null) return false;
          return comment.side === "left" ? comment.endLine === oldNo : comment.endLine === newNo;
        }});
        const showEditor = endsHere("left", oldNo) || endsHere("right", newNo);
        if (!attached.length && !showEditor) return null;
        const extra = el("tr");
        const cell = el("td");
        cell.colSpan = colSpan;
        for (const comment of attached) cell.append(noteNode(comment));
        if (showEditor) {{
          const current = selection;
          cell.append(editor(function (body) {{
            comments.push({{ file: path, startLine: current.startLine, endLine: current.endLine, side: current.side, body: body }});
            selection = null;
            render();
          }}));
        }}
        extra.append(cell);
        return extra;
      }}

      function renderFile(file, index) {{
        const section = el("section", "file");
        section.id = "file-" + index;
        const head = el("div", "file-head", file.path);
        const fileButton = el("button", "", "Comment on file");
        fileButton.type = "button";
        fileButton.addEventListener("click", function () {{
          selection = {{ file: file.path, side: "right", anchor: null, startLine: null, endLine: null }};
          render();
        }});
        head.append(fileButton);
        section.append(head);

        for (const comment of comments) {{
          if (comment.file === file.path && comment.startLine === null) section.append(noteNode(comment));
        }}
        if (selection && selection.file === file.path && selection.startLine === null) {{
          section.append(editor(function (body) {{
            comments.push({{ file: file.path, startLine: null, endLine: null, side: "right", body: body }});
            selection = null;
            render();
          }}));
        }}

        const split = viewMode === "split";
        const colSpan = split ? 4 : 3;
        const table = el("table", split ? "diff split" : "diff");
        for (const row of split ? splitRows(file.rows) : file.rows) {{
          const tr = el("tr", row.kind);
          if (row.kind === "hunk") {{
            const cell = el("td", "", row.text);
            cell.colSpan = colSpan;
            tr.append(cell);
            table.append(tr);
            continue;
          }}
          let oldNo = row.oldNo;
          let newNo = row.newNo;
          if (row.kind === "pair") {{
            oldNo = row.left ? row.left.oldNo : null;
            newNo = row.right ? row.right.newNo : null;
            tr.append(numCell(file.path, "left", oldNo), codeCell(row.left), numCell(file.path, "right", newNo), codeCell(row.right));
          }} else {{
            tr.append(numCell(file.path, "left", oldNo), numCell(file.path, "right", newNo), el("td", "code", row.text));
          }}
          if (isSelected(file.path, "left", oldNo) || isSelected(file.path, "right", newNo)) tr.classList.add("selected");
          table.append(tr);
          const extra = annotationRow(file.path, oldNo, newNo, colSpan);
          if (extra) table.append(extra);
        }}
        section.append(table);
        return section;
      }}

      function renderFileList(files) {{
        fileListNode.innerHTML = "";
        fileListNode.hidden = !files.length;
        files.forEach(function (file, index) {{
          const entry = el("div", "entry");
          const link = el("a", "", file.path);
          link.href = "#file-" + index;
          entry.append(link, el("span", "stat-add", "+" + file.additions), el("span", "stat-del", "-" + file.deletions));
          fileListNode.append(entry);
        }});
      }}

      function render() {{
        container.innerHTML = "";
        const files = parseDiff(diffText);
        renderFileList(files);
        if (!files.length) {{
          container.append(el("div", "empty-state", "No uncommitted changes found. Make some changes and refresh."));
        }}
        files.forEach(function (file, index) {{ container.append(renderFile(file, index)); }});
        statusNode.textContent = comments.length + " comment(s)";
      }}

      function setViewMode(mode) {{
        viewMode = mode;
        document.getElementById("view-unified").classList.toggle("active", mode === "unified");
        document.getElementById("view-split").classList.toggle("active", mode === "split");
        render();
      }}

      document.getElementById("view-unified").addEventListener("click", function () {{ setViewMode("unified"); }});
      document.getElementById("view-split").addEventListener("click", function () {{ setViewMode("split"); }});

      async function submitReview() {{
        const payload = {{ diff: diffText, comments: comments }};
        const globalComment = globalInput.value;
        if (globalComment.trim()) payload.globalComment = globalComment;
        statusNode.textContent = "Submitting...";
        try {{
          const response = await fetch(config.submitUrl, {{
            method: "POST",
            headers: {{ "Content-Type": "application/json" }},
            body: JSON.stringify(payload),
          }});
          const result = await response.json();
          if (!response.ok) throw new Error(result.error || "Failed to submit comments");
          let copied = "";
          try {{
            await navigator.clipboard.writeText(result.clipboardText);
            copied = " (prompt copied to clipboard)";
          }} catch (_error) {{
            copied = "";
          }}
          statusNode.textContent = "Saved " + result.mdPath + copied;
        }} catch (error) {{
          statusNode.textContent = "Error: " + error.message;
        }}
      }}

      document.getElementById("submit-review").addEventListener("click", submitReview);
      globalInput.addEventListener("keydown", function (event) {{
        if (!isPrimarySubmitHotkey(event)) return;
        event.preventDefault();
        submitReview();
      }});

      fetch(config.diffUrl)
        .then(function (response) {{
          if (!response.ok) throw new Error("Failed to fetch diff");
          return response.text();
        }})
        .then(function (text) {{
          diffText = text;
          render();
        }})
        .catch(function (error) {{
          container.innerHTML = "";
          container.append(el("div", "empty-state", "Error: " + error.message));
        }});
    }})();
  </script>
</body>
</html>
"""

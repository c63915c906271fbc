"""Minimal HTML gallery page served at the site root."""

GALLERY_UI_HTML = """<!doctype html>
<html lang="en">
  <head>
    <meta charset="utf-8" />
    <meta name="viewport" content="width=device-width, initial-scale=1" />
    <title>Photo Gallery</title>
    <style>
      body { font-family: ui-sans-serif, system-ui, sans-serif; margin: 2rem; }
      #grid { display: grid; grid-template-columns: repeat(4, 1fr);
              grid-auto-rows: 180px; gap: 1rem; }
      .tile { border: 1px solid #262626; border-radius: 8px; overflow: hidden;
              position: relative; display: flex; align-items: center;
              justify-content: center; cursor: pointer; }
      .tile img { width: 100%; height: 100%; object-fit: cover; }
      .tile .error { position: absolute; bottom: 0; background: #b91c1c;
                     color: white; font-size: 0.75rem; padding: 0.2rem; }
      #editor { margin-top: 1.5rem; }
      button { padding: 0.4rem 0.8rem; margin-right: 0.5rem; }
    </style>
  </head>
  <body>
    <h1>Photo Gallery</h1>
    <div id="grid">Loading photos...</div>
    <div id="editor" hidden>
      <h2>Edit Photo</h2>
      <div id="layouts"></div>
      <p>
        Crop (percent): x <input id="cx" size="3" value="0" />
        y <input id="cy" size="3" value="0" />
        width <input id="cw" size="3" value="100" />
        height <input id="ch" size="3" value="100" />
        <button id="save-crop" onclick="saveCrop()">Save crop</button>
      </p>
      <p id="status"></p>
    </div>
    <input id="file" type="file" accept="image/*" hidden onchange="upload(this)" />
    <script>
      let selected = null;

      async function call(method, path, body) {
        const res = await fetch(path, {
          method,
          headers: body ? { 'Content-Type': 'application/json' } : {},
          body: body ? JSON.stringify(body) : undefined,
        });
        const data = await res.json();
        if (!res.ok) throw new Error(data.detail || res.status);
        return data;
      }

      async function load() {
        const grid = document.getElementById('grid');
        try {
          const data = await call('GET', '/api/photos');
          grid.innerHTML = '';
          for (const tile of data.tiles) grid.appendChild(renderTile(tile));
        } catch (err) {
          grid.textContent = 'Could not load photos: ' + err.message;
        }
      }

      function renderTile(tile) {
        const el = document.createElement('div');
        el.className = 'tile';
        el.style.gridColumn = 'span ' + tile.columnSpan;
        el.style.gridRow = 'span ' + tile.rowSpan;
        if (tile.photo) {
          const img = document.createElement('img');
          img.src = tile.photo.croppedImageUrl || tile.photo.imageUrl;
          img.loading = 'lazy';
          el.appendChild(img);
          el.onclick = () => openEditor(tile.photo.id);
        } else {
          el.textContent = tile.busy ? 'Uploading...' : '+';
          el.onclick = () => document.getElementById('file').click();
        }
        if (tile.error) {
          const err = document.createElement('div');
          err.className = 'error';
          err.textContent = tile.error;
          el.appendChild(err);
        }
        return el;
      }

      async function upload(input) {
        if (!input.files.length) return;
        const slot = document.querySelector('#grid .tile:last-child');
        if (slot) { slot.textContent = 'Uploading...'; slot.onclick = null; }
        input.disabled = true;
        const form = new FormData();
        form.append('file', input.files[0]);
        try {
          const res = await fetch('/api/tiles', { method: 'POST', body: form });
          if (!res.ok) alert('Upload failed: ' + (await res.json()).detail);
        } finally {
          input.disabled = false;
          input.value = '';
        }
        load();
      }

      async function openEditor(photoId) {
        selected = photoId;
        const layouts = await call('GET', '/api/layouts');
        const box = document.getElementById('layouts');
        box.innerHTML = '';
        for (const option of layouts) {
          const btn = document.createElement('button');
          btn.textContent = option.label;
          btn.onclick = () => setLayout(option.id);
          box.appendChild(btn);
        }
        document.getElementById('editor').hidden = false;
      }

      async function setLayout(layout) {
        try {
          await call('PUT', `/api/tiles/${selected}/layout`, { layout });
          document.getElementById('editor').hidden = true;
          load();
        } catch (err) {
          document.getElementById('status').textContent = err.message;
        }
      }

      async function saveCrop() {
        const value = (id) => parseFloat(document.getElementById(id).value);
        const button = document.getElementById('save-crop');
        button.disabled = true;
        button.textContent = 'Saving...';
        try {
          await call('POST', `/api/tiles/${selected}/crop/open`,
                     { displayedWidth: 100, displayedHeight: 100 });
          await call('PUT', `/api/tiles/${selected}/crop`, {
            x: value('cx'), y: value('cy'), width: value('cw'),
            height: value('ch'), unit: '%',
          });
          await call('POST', `/api/tiles/${selected}/crop/confirm`);
          document.getElementById('editor').hidden = true;
          load();
        } catch (err) {
          document.getElementById('status').textContent = err.message;
        } finally {
          button.disabled = false;
          button.textContent = 'Save crop';
        }
      }

      load();
    </script>
  </body>
</html>
"""

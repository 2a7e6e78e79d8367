"""HTML for the browser side of the HTTP mode: sign-in, Picker and error pages."""

import json
from html import escape

_BASE_STYLE = """
    * { margin: 0; padding: 0; box-sizing: border-box; }
    body {
      font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif;
      background: linear-gradient(135deg, #667eea 0%, #764ba2 100%);
      min-height: 100vh;
      padding: 40px 20px;
    }
    .card {
      background: white;
      border-radius: 12px;
      padding: 30px;
      max-width: 800px;
      margin: 0 auto;
      box-shadow: 0 10px 40px rgba(0,0,0,0.2);
    }
    h1 { color: #1a73e8; margin-bottom: 20px; }
    .btn {
      display: inline-block;
      background: #1a73e8;
      color: white;
      border: none;
      text-decoration: none;
      padding: 14px 28px;
      border-radius: 8px;
      font-size: 16px;
      font-weight: 600;
      cursor: pointer;
    }
    .btn:hover { background: #1557b0; }
    .btn:disabled { background: #ccc; cursor: not-allowed; }
"""


def login_page(auth_url: str) -> str:
    return f"""<!DOCTYPE html>
<html>
<head>
  <title>Google Drive MCP</title>
  <meta charset="utf-8">
  <style>{_BASE_STYLE}
    .card {{ max-width: 400px; text-align: center; }}
  </style>
</head>
<body>
  <div class="card">
    <h1>Google Drive MCP</h1>
    <a href="{escape(auth_url)}" class="btn">Sign in with Google</a>
  </div>
</body>
</html>
"""


def picker_page(access_token: str, client_id: str, app_id: str) -> str:
    """Picker UI. Picked ids are POSTed to /api/open-files so the server opens each one."""
    return f"""<!DOCTYPE html>
<html>
<head>
  <title>Google Drive Picker</title>
  <meta charset="utf-8">
  <style>{_BASE_STYLE}
    #status {{ padding: 12px; border-radius: 8px; margin-bottom: 20px; font-weight: 500; }}
    .success {{ background: #d4edda; color: #155724; }}
    .error {{ background: #f8d7da; color: #721c24; }}
    .info {{ background: #cfe2ff; color: #084298; }}
    #fileList {{ list-style: none; margin-top: 20px; }}
    #fileList li {{ padding: 12px; margin: 8px 0; background: #f8f9fa; border-radius: 8px; border-left: 4px solid #1a73e8; }}
    #fileList strong {{ display: block; margin-bottom: 4px; }}
    #fileList small {{ color: #666; }}
  </style>
  <script src="https://apis.google.com/js/api.js"></script>
  <script>
    const CLIENT_ID = {json.dumps(client_id)};
    const ACCESS_TOKEN = {json.dumps(access_token)};
    const APP_ID = {json.dumps(app_id)};
    let pickerApiLoaded = false;

    function onApiLoad() {{
      gapi.load('picker', () => {{
        pickerApiLoaded = true;
        document.getElementById('openPicker').disabled = false;
        setStatus('Ready! Click the button to select files.', 'info');
      }});
    }}

    function openPicker() {{
      if (!pickerApiLoaded) return;
      const picker = new google.picker.PickerBuilder()
        .setAppId(APP_ID)
        .addView(google.picker.ViewId.DOCS)
        .setOAuthToken(ACCESS_TOKEN)
        .setCallback(pickerCallback)
        .build();
      picker.setVisible(true);
    }}

    async function pickerCallback(data) {{
      if (data.action !== google.picker.Action.PICKED) return;
      const files = data.docs;
      displayFiles(files);
      setStatus('Processing...', 'info');
      try {{
        const response = await fetch('/api/open-files', {{
          method: 'POST',
          headers: {{ 'Content-Type': 'application/json' }},
          body: JSON.stringify({{ fileIds: files.map(f => f.id) }})
        }});
        const result = await response.json();
        if (result.success) {{
          setStatus(files.length + ' file(s) now accessible via MCP server!', 'success');
        }} else {{
          setStatus(result.error || result.message || 'Failed to open files', 'error');
        }}
      }} catch (error) {{
        setStatus('Error: ' + error.message, 'error');
      }}
    }}

    function displayFiles(files) {{
      const list = document.getElementById('fileList');
      list.innerHTML = '';
      files.forEach(file => {{
        const li = document.createElement('li');
        const name = document.createElement('strong');
        name.textContent = file.name;
        const id = document.createElement('small');
        id.textContent = 'ID: ' + file.id;
        li.append(name, id);
        list.appendChild(li);
      }});
    }}

    function setStatus(message, type = '') {{
      const status = document.getElementById('status');
      status.textContent = message;
      status.className = type;
    }}

    window.onload = onApiLoad;
  </script>
</head>
<body>
  <div class="card">
    <h1>Select Files</h1>
    <p style="color: #666; margin-bottom: 20px;">Choose files from your Google Drive to access via the MCP server. Selected files will be available to all MCP tools.</p>
    <div id="status">Loading...</div>
    <button id="openPicker" onclick="openPicker()" disabled class="btn">Select Files from Google Drive</button>
    <ul id="fileList"></ul>
  </div>
</body>
</html>
"""


def error_page(title: str, message: str) -> str:
    return f"""<!DOCTYPE html>
<html>
<head><title>Authentication Error</title></head>
<body style="font-family: Arial; max-width: 600px; margin: 50px auto; padding: 20px;">
  <h1 style="color: #d32f2f;">{escape(title)}</h1>
  <p>{escape(message)}</p>
  <p>You can close this window and try again.</p>
</body>
</html>
"""

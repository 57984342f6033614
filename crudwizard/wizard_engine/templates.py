# crudwizard/wizard_engine/templates.py

import logging
from typing import Any, Dict, List, Mapping

from jinja2 import (
    ChoiceLoader,
    DictLoader,
    Environment,
    FileSystemLoader,
    StrictUndefined,
    TemplateSyntaxError,
)

from crudwizard.wizard_engine.results import TemplateValidationResult
from crudwizard.wizard_engine.sources.base import TemplateRenderer

logger = logging.getLogger(__name__)

__all__ = ["Jinja2TemplateRenderer", "TemplateSyntaxError", "DEFAULT_TEMPLATES", "TEMPLATE_SUFFIX"]

TEMPLATE_SUFFIX = "jinja"

# --- Built-in templates ---
# A file with the same name in the templates directory takes precedence.

CONTROLLER_TEMPLATE = """\
// Generated from config {{ config.config_hash }}
// Entity: {{ entity.entity_id }}
// Generated at: {{ now }}

namespace {{ namespace }}.Controllers;

using Microsoft.AspNetCore.Mvc;
using {{ namespace }}.Models;

/// <summary>
/// Controller for {{ entity.entity_name }}.
/// </summary>
[ApiController]
[Route("{{ base_route }}")]
public partial class {{ entity.entity_id }}Controller : ControllerBase
{
    private readonly ILogger<{{ entity.entity_id }}Controller> _logger;

    public {{ entity.entity_id }}Controller(ILogger<{{ entity.entity_id }}Controller> logger)
    {
        _logger = logger;
    }

    [HttpGet("list")]
    public IActionResult List()
    {
        _logger.LogInformation("Listing {{ entity.entity_name }}");
        return Ok(new List<{{ entity.entity_id }}ViewModel>());
    }

    [HttpGet("{id}")]
    public IActionResult GetById({{ key_type }} id)
    {
        _logger.LogInformation("Getting {{ entity.entity_name }} {Id}", id);
        return NotFound();
    }

    [HttpPost]
    public IActionResult Create([FromBody] {{ entity.entity_id }}ViewModel model)
    {
        _logger.LogInformation("Creating {{ entity.entity_name }}");
        return Ok(model);
    }

    [HttpPut("{id}")]
    public IActionResult Update({{ key_type }} id, [FromBody] {{ entity.entity_id }}ViewModel model)
    {
        _logger.LogInformation("Updating {{ entity.entity_name }} {Id}", id);
        return Ok(model);
    }

    [HttpDelete("{id}")]
    public IActionResult Delete({{ key_type }} id)
    {
        _logger.LogInformation("Deleting {{ entity.entity_name }} {Id}", id);
        return NoContent();
    }
}
"""

VIEWMODEL_TEMPLATE = """\
// Generated from config {{ config.config_hash }}
// Generated at: {{ now }}

namespace {{ namespace }}.Models;

/// <summary>
/// View model for {{ entity.entity_name }} ({{ schema.fully_qualified_name }}).
/// </summary>
public partial class {{ entity.entity_id }}ViewModel
{
{% for column in columns %}
    /// <summary>
    /// {{ column.description or column.name }}
    /// </summary>
    public {{ column.target_type_name }} {{ column.name }} { get; set; }
{% if not loop.last %}

{% endif %}
{% endfor %}
}
"""

VIEW_TEMPLATE = """\
@{
    ViewData["Title"] = "{{ entity.entity_name }}";
}

<!-- Generated from config {{ config.config_hash }} -->
<!-- Entity: {{ entity.entity_id }} -->

<div class="container-fluid {{ entity_slug }}-container">
    <div class="row mb-3">
        <div class="col-md-6">
            <h2>{{ entity.entity_name | e }}</h2>
        </div>
        <div class="col-md-6 text-end">
            <button class="btn btn-primary" id="btnNew">New</button>
        </div>
    </div>

    <div class="row {{ entity_slug }}-grid">
        <div class="col-md-12">
            <table id="dataTable" class="table table-striped table-hover">
                <thead>
                    <tr>
{% for field in grid_fields %}
                        <th>{{ field.label | e }}</th>
{% endfor %}
                        <th>Actions</th>
                    </tr>
                </thead>
                <tbody></tbody>
            </table>
        </div>
    </div>
</div>

<div class="modal fade" id="formModal" tabindex="-1">
    <div class="modal-dialog modal-lg">
        <div class="modal-content">
            <div class="modal-body">
                <form id="entityForm" class="{{ entity_slug }}-form row row-cols-{{ config.form_layout.columns }}">
{% for field in form_fields %}
                    <div class="mb-3">
                        <label for="{{ field.field_name }}" class="form-label">{{ field.label | e }}</label>
                        <input type="{{ field.input_type.value }}" class="form-control" id="{{ field.field_name }}" name="{{ field.field_name }}"{% if field.is_required %} required{% endif %}{% if field.is_read_only %} readonly{% endif %} />
                    </div>
{% endfor %}
                </form>
            </div>
            <div class="modal-footer">
                <button type="button" class="btn btn-secondary" data-bs-dismiss="modal">Cancel</button>
                <button type="button" class="btn btn-primary" id="btnSave">Save</button>
            </div>
        </div>
    </div>
</div>

@section Scripts {
    <script src="~/js/{{ entity_slug }}.generated.js"></script>
    <script src="~/js/{{ entity_slug }}.custom.js"></script>
}
"""

SCRIPT_TEMPLATE = """\
// Generated from config {{ config.config_hash }}
// Generated at: {{ now }}

$(document).ready(function() {
    $('#dataTable').DataTable({
        serverSide: {{ 'true' if config.grid_layout.server_side else 'false' }},
        searching: {{ 'true' if config.grid_layout.has_search else 'false' }},
        pageLength: {{ config.grid_layout.page_size }},
        ajax: {
            url: '{{ base_route }}/list',
            type: 'GET'
        },
        columns: [
{% for field in grid_fields %}
            { data: '{{ field.field_name }}', orderable: {{ 'true' if field.is_sortable else 'false' }}, searchable: {{ 'true' if field.is_searchable else 'false' }} },
{% endfor %}
        ]
    });

    $('#btnNew').click(function() {
        $('#entityForm')[0].reset();
        $('#formModal').modal('show');
    });
});
"""

STYLE_TEMPLATE = """\
/* Generated from config {{ config.config_hash }} */
/* Generated at: {{ now }} */

.{{ entity_slug }}-container {
    padding: 20px;
}

.{{ entity_slug }}-grid {
    margin-top: 20px;
}

.{{ entity_slug }}-form {
    max-width: 600px;
}
"""

CUSTOM_CONTROLLER_TEMPLATE = """\
namespace {{ namespace }}.Controllers;

/// <summary>
/// Custom extensions for {{ entity.entity_id }}Controller.
/// This file is not overwritten on regeneration.
/// </summary>
public partial class {{ entity.entity_id }}Controller
{
}
"""

CUSTOM_VIEWMODEL_TEMPLATE = """\
namespace {{ namespace }}.Models;

/// <summary>
/// Custom extensions for {{ entity.entity_id }}ViewModel.
/// This file is not overwritten on regeneration.
/// </summary>
public partial class {{ entity.entity_id }}ViewModel
{
}
"""

CUSTOM_SCRIPT_TEMPLATE = """\
// Custom extensions for {{ entity.entity_id }}.
// This file is not overwritten on regeneration.

$(document).ready(function() {
});
"""

DEFAULT_TEMPLATES: Dict[str, str] = {
    f"Controller.cs.{TEMPLATE_SUFFIX}": CONTROLLER_TEMPLATE,
    f"ViewModel.cs.{TEMPLATE_SUFFIX}": VIEWMODEL_TEMPLATE,
    f"Index.cshtml.{TEMPLATE_SUFFIX}": VIEW_TEMPLATE,
    f"script.js.{TEMPLATE_SUFFIX}": SCRIPT_TEMPLATE,
    f"style.css.{TEMPLATE_SUFFIX}": STYLE_TEMPLATE,
    f"Controller.custom.cs.{TEMPLATE_SUFFIX}": CUSTOM_CONTROLLER_TEMPLATE,
    f"ViewModel.custom.cs.{TEMPLATE_SUFFIX}": CUSTOM_VIEWMODEL_TEMPLATE,
    f"script.custom.js.{TEMPLATE_SUFFIX}": CUSTOM_SCRIPT_TEMPLATE,
}


class Jinja2TemplateRenderer(TemplateRenderer):
    """
    Renders generation templates with Jinja2.

    Templates are looked up in the configured directory first and then in
    the built-in set. Undefined variables are errors, not empty strings.
    """
    def __init__(self, templates_path: str):
        self.templates_path = templates_path
        self.env = Environment(
            loader=ChoiceLoader([
                FileSystemLoader(templates_path),
                DictLoader(DEFAULT_TEMPLATES),
            ]),
            undefined=StrictUndefined,
            trim_blocks=True,
            keep_trailing_newline=True,
        )

    def render(self, template_text: str, context: Mapping[str, Any]) -> str:
        template = self.env.from_string(template_text)
        output = template.render(**context)
        logger.debug("Rendered template from string (%d chars).", len(output))
        return output

    def render_file(self, template_name: str, context: Mapping[str, Any]) -> str:
        logger.debug("Rendering template %s", template_name)
        return self.env.get_template(template_name).render(**context)

    def available_templates(self) -> List[str]:
        return self.env.list_templates(extensions=[TEMPLATE_SUFFIX])

    def validate_template(self, template_text: str) -> TemplateValidationResult:
        result = TemplateValidationResult()
        try:
            self.env.parse(template_text)
        except TemplateSyntaxError as e:
            result.is_valid = False
            result.errors.append(f"Parse error on line {e.lineno}: {e.message}")
            logger.warning("Template failed validation: %s", e)
        return result

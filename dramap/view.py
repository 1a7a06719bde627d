#!/usr/bin/env python3
from itertools import islice
import matplotlib.pyplot as plt
from matplotlib.patches import Rectangle
from matplotlib.lines import Line2D

from dramap.settings import Settings as st
from dramap.ui import UI
from dramap.palette import Palette
from dramap.mapping import PathConstraint, Level
from dramap.resolver import Aborted, sibling_ranges
from dramap.vm import classify_usage, UNUSED, SINGLE, CONFLICT
from dramap.util import fmt_ranges

class LevelView:
    """All the elements of one hierarchy level below a drill-down path, with
    their address ranges and the VMs using them."""

    def __init__(self, path, level, elements, vms=()):
        self.path = path
        self.level = level
        # one dict per element: id, name, status, reason, range_count,
        # ranges, vms, usage, color, desc
        self.elements = elements
        # name, color of every VM appearing in the legend
        self.vms = list(vms)
        return

    @classmethod
    def build(cls, path, mapping, space, vms, max_bit_span):
        path = PathConstraint.parse(path) if isinstance(path, str) else path
        level, results = sibling_ranges(path, mapping, space, max_bit_span)
        elements = []
        for ident,ranges in results:
            name = f'{level.label}{ident}'
            if isinstance(ranges, Aborted):
                elements.append({
                    'id': ident, 'name': name, 'status': 'aborted',
                    'reason': ranges.reason, 'range_count': 0, 'ranges': [],
                    'bytes': 0, 'vms': [], 'usage': UNUSED,
                    'color': Palette.unused, 'desc': '-',
                })
                continue
            usage = classify_usage(ranges, vms)
            elements.append({
                'id': ident, 'name': name, 'status': 'ok', 'reason': '',
                'range_count': len(ranges),
                'ranges': [[r.start, r.end] for r in
                           islice(ranges, st.Plot.max_export_ranges)],
                'bytes': ranges.covered_bytes(),
                'vms': [vm.index for vm in usage.vms],
                'usage': usage.kind,
                'color': usage.color(),
                'desc': usage.describe(),
                '_ranges': ranges,
            })
        legend = [{'name': vm.name, 'color': vm.color}
                  for vm in vms if vm.is_valid]
        return cls(path, level, elements, legend)

    @classmethod
    def from_dict(cls, vdata):
        view = vdata['view']
        path = PathConstraint.parse(view['path'])
        level = Level.from_name(view['level'])
        return cls(path, level, view['elements'], vdata.get('vms', []))

    def to_dict(self):
        elements = [{k:v for k,v in el.items() if not k.startswith('_')}
                    for el in self.elements]
        return {
            'meta': {'timestamp': st.timestamp,
                     'config': st.Memory.file_path},
            'memory': st.Memory.to_dict(),
            'vms': self.vms,
            'view': {
                'path': str(self.path),
                'breadcrumb': self.path.breadcrumb(),
                'level': self.level.label,
                'elements': elements,
            }
        }

    def count(self, usage):
        return sum(1 for el in self.elements if el['usage'] == usage)

    def describe(self):
        cols = ([self.level.label], ['Usage'], ['Ranges'])
        for el in self.elements:
            cols[0].append(el['name'])
            cols[1].append(el['desc'])
            if el['status'] == 'aborted':
                cols[2].append('aborted')
            elif '_ranges' in el:
                cols[2].append(fmt_ranges(el['_ranges']))
            else:
                cols[2].append(f'{el["range_count"]} ranges')
        UI.columns(cols, sep='  ', header=True)

        aborted = [el for el in self.elements if el['status'] == 'aborted']
        if aborted:
            UI.warning(f'Range calculation aborted for {len(aborted)} '
                       f'element(s): {aborted[0]["reason"]}')
        if self.vms:
            UI.text(f'used by one VM: {self.count(SINGLE)}, '
                    f'conflicts: {self.count(CONFLICT)}, '
                    f'unused: {self.count(UNUSED)}')
        return

    def plot(self):
        count = len(self.elements)
        if count == 0:
            UI.warning(f'{self.level.label} has no elements to plot.')
            return None
        n_cols = min(count, st.Plot.max_cols)
        n_rows = -(-count // n_cols)

        fig,axes = plt.subplots(figsize=(st.Plot.width, st.Plot.height))
        fig.patch.set_facecolor('white')

        # one square per element, filled left to right, top to bottom
        show_labels = count <= st.Plot.label_max_count
        for el in self.elements:
            row, col = divmod(el['id'], n_cols)
            y = n_rows - 1 - row
            axes.add_patch(Rectangle((col, y), 0.92, 0.92,
                                     facecolor=el['color'],
                                     edgecolor=st.Plot.edge_color,
                                     linewidth=0.5))
            if show_labels:
                label = str(el['id'])
                if el['status'] == 'aborted':
                    label += '!'
                axes.text(col+0.46, y+0.46, label, ha='center', va='center',
                          fontsize=6)

        axes.set_xlim(-0.1, n_cols)
        axes.set_ylim(-0.1, n_rows)
        axes.set_aspect('equal')
        axes.set_xticks([])
        axes.set_yticks([])
        for spine in axes.spines.values():
            spine.set_visible(False)

        title = f'{self.level.label}s in {self.path.breadcrumb()}'
        axes.set_title(title, fontsize=10, pad=st.Plot.img_title_vpad)

        # legend: one entry per VM, plus conflicts and unused elements
        handles = [Line2D([], [], marker='s', linestyle='', markersize=8,
                          markerfacecolor=vm['color'],
                          markeredgecolor=st.Plot.edge_color,
                          label=vm['name']) for vm in self.vms]
        for label,color in (('Conflict', Palette.conflict),
                            ('Unused', Palette.unused)):
            handles.append(Line2D([], [], marker='s', linestyle='',
                                  markersize=8, markerfacecolor=color,
                                  markeredgecolor=st.Plot.edge_color,
                                  label=label))
        axes.legend(handles=handles, loc='upper left',
                    bbox_to_anchor=(1.01, 1), fontsize=7, frameon=False)
        return fig
